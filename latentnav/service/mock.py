"""
Offline stand-in for the generation server.

Images are solid colour swatches: components 0/1/2 drive red/green/blue
(-5..5 mapped to 0..255) and component 3 adds brightness. Useful for
running the UI and tests without a model.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from PIL import Image, ImageDraw

from latentnav.data.images import encode_image

from .base import GenerationService
from .registry import register_service

PLACEHOLDER_VIDEO_URL = "https://interactive-examples.mdn.mozilla.net/media/cc0-videos/flower.mp4"


def _channel(value: float) -> float:
    return min(255.0, max(0.0, ((value + 5) / 10) * 255))


def vector_to_color(vector: Sequence[float]) -> tuple:
    """RGB colour for a latent vector."""
    padded = list(vector) + [0.0] * max(0, 4 - len(vector))
    brightness = padded[3] * 20
    return tuple(
        int(min(255, max(0, _channel(padded[c]) + brightness))) for c in range(3)
    )


def mock_image(vector: Sequence[float], size: int = 64, label: bool = False) -> str:
    """Render the colour swatch for a vector as a PNG data URL."""
    color = vector_to_color(vector)
    img = Image.new("RGB", (size, size), color=color)
    if label:
        draw = ImageDraw.Draw(img)
        draw.text((5, size - 14), f"R:{color[0]} G:{color[1]} B:{color[2]}", fill="white")
    return encode_image(img)


@register_service("mock")
class MockGenerationService(GenerationService):
    """Deterministic local service; no network."""

    def __init__(
        self,
        latent_dim: int = 10,
        training_points: int = 500,
        seed: int = 0,
        render_delay: float = 0.0,
        preview_size: int = 64,
        image_size: int = 128,
    ):
        self.latent_dim = latent_dim
        self.training_points = training_points
        self.render_delay = render_delay
        self.preview_size = preview_size
        self.image_size = image_size
        self._rng = np.random.default_rng(seed)
        # Drawn once so the scatter stays put across axis changes
        self._training = ((self._rng.random((training_points, latent_dim)) - 0.5) * 10).tolist()
        self.models = ["mock_seaweed_v1.pkl", "mock_faces.pkl"]
        self.current_model = self.models[0]

    @property
    def name(self) -> str:
        return "mock"

    async def get_training_data(self) -> List[List[float]]:
        return [list(v) for v in self._training]

    async def generate_batch(self, vectors: Sequence[Sequence[float]]) -> List[Any]:
        return [mock_image(v, size=self.preview_size) for v in vectors]

    async def generate_image(self, vector: Sequence[float]) -> Any:
        return mock_image(vector, size=self.image_size, label=True)

    async def generate_edited_image(
        self, base_vector: Sequence[float], slider_values: Sequence[float]
    ) -> Any:
        # The colour follows the sliders, nudged by the base
        base = list(base_vector)[:len(slider_values)]
        base += [0.0] * (len(slider_values) - len(base))
        mixed = [b * 0.1 + s for b, s in zip(base, slider_values)]
        return mock_image(mixed, size=self.image_size, label=True)

    async def get_random_vector(self) -> List[float]:
        return ((self._rng.random(self.latent_dim) - 0.5) * 10).tolist()

    async def get_vector_from_map(
        self, x: float, y: float, x_index: int, y_index: int
    ) -> List[float]:
        vector = [0.0] * self.latent_dim
        vector[x_index] = float(x)
        vector[y_index] = float(y)
        return vector

    async def render_video(self, keyframes: List[Dict[str, Any]], fps: int = 24) -> str:
        print(f"[Service] Mock render of {len(keyframes)} keyframes at {fps} fps")
        if self.render_delay:
            await asyncio.sleep(self.render_delay)
        return PLACEHOLDER_VIDEO_URL

    async def list_models(self) -> List[str]:
        return list(self.models)

    async def load_model(self, model_name: str) -> bool:
        print(f"[Service] Mock switch to: {model_name}")
        self.current_model = model_name
        return True

    async def upload_model(self, path: Path) -> bool:
        name = Path(path).name
        print(f"[Service] Mock upload: {name}")
        if name not in self.models:
            self.models.append(name)
        return True
