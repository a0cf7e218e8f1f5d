"""
Session data model.

All records here are frozen. Updates go through small pure functions
that return a new SessionState, so the coordinator can decide whether
to commit a result (or drop it as stale) by swapping one reference.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from .errors import ValidationError

# Multipliers of the base axis range for the three slider coarseness settings
RANGE_MULTIPLIERS: Dict[str, float] = {
    "fine": 0.1,
    "normal": 1.0,
    "coarse": 3.0,
}


@dataclass(frozen=True)
class AxisBinding:
    """Pair of latent components shown on the 2D map.

    A binding with x_index == y_index would collapse the map to a line,
    so it is rejected outright.
    """
    x_index: int = 0
    y_index: int = 1

    def __post_init__(self):
        if self.x_index == self.y_index:
            raise ValidationError(
                f"X and Y axes must be different components (both are {self.x_index})"
            )

    def validate(self, latent_dim: int) -> "AxisBinding":
        for name, idx in (("x_index", self.x_index), ("y_index", self.y_index)):
            if not 0 <= idx < latent_dim:
                raise ValidationError(f"{name}={idx} out of range for dimension {latent_dim}")
        return self

    def with_x(self, x_index: int) -> "AxisBinding":
        return AxisBinding(x_index=x_index, y_index=self.y_index)

    def with_y(self, y_index: int) -> "AxisBinding":
        return AxisBinding(x_index=self.x_index, y_index=y_index)


@dataclass(frozen=True)
class RangeTable:
    """Per-component slider/axis half-width.

    base_range is what the fine/normal/coarse multipliers scale; the
    starting half-width need not be one of those kinds.
    """
    base_range: float
    ranges: Tuple[float, ...]
    multipliers: Tuple[Tuple[str, float], ...] = tuple(RANGE_MULTIPLIERS.items())

    @classmethod
    def uniform(
        cls,
        latent_dim: int,
        initial: float,
        multipliers: Optional[Dict[str, float]] = None,
        base_range: Optional[float] = None,
    ) -> "RangeTable":
        """Every component at `initial`; kinds scale `base_range` (default: initial)."""
        base_range = initial if base_range is None else base_range
        if initial <= 0 or base_range <= 0:
            raise ValueError(f"ranges must be positive, got {initial} and {base_range}")
        return cls(
            base_range=float(base_range),
            ranges=(float(initial),) * latent_dim,
            multipliers=tuple((multipliers or RANGE_MULTIPLIERS).items()),
        )

    def __len__(self) -> int:
        return len(self.ranges)

    def half_range(self, index: int) -> float:
        return self.ranges[index]

    def with_value(self, index: int, value: float) -> "RangeTable":
        if value <= 0:
            raise ValidationError(f"Range for component {index} must be positive, got {value}")
        if not 0 <= index < len(self.ranges):
            raise ValidationError(f"Component {index} out of range")
        ranges = list(self.ranges)
        ranges[index] = float(value)
        return replace(self, ranges=tuple(ranges))

    def with_kind(self, index: int, kind: str) -> "RangeTable":
        """Set a component to one of the canonical fine/normal/coarse widths."""
        multipliers = dict(self.multipliers)
        if kind not in multipliers:
            raise ValidationError(f"Unknown range kind '{kind}'. Available: {list(multipliers)}")
        return self.with_value(index, self.base_range * multipliers[kind])

    def kind(self, index: int) -> str:
        """Canonical kind for a component; anything non-canonical reads as normal."""
        value = self.ranges[index]
        multipliers = dict(self.multipliers)
        for name in ("fine", "coarse"):
            if value == self.base_range * multipliers[name]:
                return name
        return "normal"

    def slider_step(self, index: int) -> float:
        return 0.01 if self.ranges[index] <= 1.0 else 0.1


@dataclass(frozen=True)
class SessionState:
    """Live state of one navigation session.

    slider_values is the full latent vector in direct mode and the
    slider delta vector in base+delta mode. base_vector is only used in
    base+delta mode.
    """
    binding: AxisBinding
    ranges: RangeTable
    slider_values: Tuple[float, ...]
    base_vector: Optional[Tuple[float, ...]] = None
    exact_click: Optional[Tuple[float, float]] = None
    image: Any = None
    editing_id: Optional[int] = None
    busy: bool = False
    last_error: Optional[str] = None

    @classmethod
    def initial(
        cls,
        latent_dim: int,
        axis_range: float,
        binding: Optional[AxisBinding] = None,
        multipliers: Optional[Dict[str, float]] = None,
        range_base: Optional[float] = None,
    ) -> "SessionState":
        binding = (binding or AxisBinding()).validate(latent_dim)
        return cls(
            binding=binding,
            ranges=RangeTable.uniform(latent_dim, axis_range, multipliers, base_range=range_base),
            slider_values=(0.0,) * latent_dim,
        )

    @property
    def latent_dim(self) -> int:
        return len(self.slider_values)

    @property
    def bound_ranges(self) -> Tuple[float, float]:
        """Half-ranges (rx, ry) of the two bound components."""
        return (
            self.ranges.half_range(self.binding.x_index),
            self.ranges.half_range(self.binding.y_index),
        )


def with_binding(state: SessionState, binding: AxisBinding) -> SessionState:
    binding.validate(state.latent_dim)
    return replace(state, binding=binding)


def with_ranges(state: SessionState, ranges: RangeTable) -> SessionState:
    return replace(state, ranges=ranges)


def with_slider(state: SessionState, index: int, value: float) -> SessionState:
    if not 0 <= index < state.latent_dim:
        raise ValidationError(f"Component {index} out of range for dimension {state.latent_dim}")
    values = list(state.slider_values)
    values[index] = float(value)
    return replace(state, slider_values=tuple(values))


def with_busy(state: SessionState, busy: bool) -> SessionState:
    return replace(state, busy=busy)


def with_error(state: SessionState, message: Optional[str]) -> SessionState:
    return replace(state, last_error=message)


def with_editing(state: SessionState, editing_id: Optional[int]) -> SessionState:
    return replace(state, editing_id=editing_id)
