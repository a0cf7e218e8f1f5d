"""
Engine configuration.

Settings come from an optional JSON file, then environment overrides:
    LATENTNAV_SERVER_URL        generation server root URL
    LATENTNAV_USE_MOCK=1        use the offline mock service
    LATENTNAV_COMPOSITION_MODE  'direct' or 'base_delta'
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Dict, Optional, Union

from latentnav.core.composer import CompositionMode
from latentnav.core.state import RANGE_MULTIPLIERS


@dataclass
class EngineConfig:
    server_url: str = "http://localhost:8000"
    latent_dim: int = 10
    grid_size: int = 10
    chunk_size: int = 10
    axis_range: float = 5.0
    range_base: float = 10.0
    range_multipliers: Dict[str, float] = field(default_factory=lambda: dict(RANGE_MULTIPLIERS))
    default_duration: float = 2.0
    fps: int = 24
    composition_mode: str = "base_delta"
    auto_rebuild_grid: bool = True
    rebuild_on_range_change: bool = False
    request_timeout: Optional[float] = None
    plot_size: int = 600
    training_points: int = 500
    training_seed: int = 0
    knn_algorithm: str = "brute"
    use_mock: bool = False

    def validate(self) -> "EngineConfig":
        """Raise ValueError on inconsistent settings."""
        checks = [
            (self.grid_size >= 2, f"grid_size must be >= 2, got {self.grid_size}"),
            (self.chunk_size >= 1, f"chunk_size must be >= 1, got {self.chunk_size}"),
            (self.latent_dim >= 2, f"latent_dim must be >= 2, got {self.latent_dim}"),
            (self.axis_range > 0, f"axis_range must be positive, got {self.axis_range}"),
            (self.range_base > 0, f"range_base must be positive, got {self.range_base}"),
            (self.fps > 0, f"fps must be positive, got {self.fps}"),
            (self.default_duration > 0, f"default_duration must be positive, got {self.default_duration}"),
            (self.plot_size > 0, f"plot_size must be positive, got {self.plot_size}"),
            (self.knn_algorithm in ("brute", "kd_tree"), f"Unknown knn_algorithm: '{self.knn_algorithm}'"),
            (
                set(self.range_multipliers) == set(RANGE_MULTIPLIERS)
                and all(v > 0 for v in self.range_multipliers.values()),
                f"range_multipliers needs positive {sorted(RANGE_MULTIPLIERS)}",
            ),
        ]
        for ok, message in checks:
            if not ok:
                raise ValueError(message)
        CompositionMode.parse(self.composition_mode)
        return self

    @property
    def mode(self) -> CompositionMode:
        return CompositionMode.parse(self.composition_mode)

    def to_dict(self) -> dict:
        return asdict(self)


def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.lower() in ("1", "true", "yes")


def load_config(path: Union[str, Path, None] = None, **overrides) -> EngineConfig:
    """Load configuration from JSON file + environment + explicit overrides.

    Args:
        path: Optional JSON file; unknown keys are ignored
        **overrides: Values that win over file and environment (None skipped)

    Returns:
        Validated EngineConfig
    """
    defaults = EngineConfig()
    values = {}
    if path is not None:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        for f_ in fields(EngineConfig):
            values[f_.name] = raw.get(f_.name, getattr(defaults, f_.name))

    if os.environ.get("LATENTNAV_SERVER_URL"):
        values["server_url"] = os.environ["LATENTNAV_SERVER_URL"]
    use_mock = _env_flag("LATENTNAV_USE_MOCK")
    if use_mock is not None:
        values["use_mock"] = use_mock
    if os.environ.get("LATENTNAV_COMPOSITION_MODE"):
        values["composition_mode"] = os.environ["LATENTNAV_COMPOSITION_MODE"]

    values.update({k: v for k, v in overrides.items() if v is not None})
    config = EngineConfig(**values)
    print(f"Config: server={config.server_url} mode={config.composition_mode} mock={config.use_mock}")
    return config.validate()
