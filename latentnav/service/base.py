"""Abstract base class for generation services."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence


class GenerationService(ABC):
    """
    Abstract interface to the external generative model.

    The engine never synthesizes pixels itself. Implementations provide:
    - Preview batches for the cache grid
    - Exact generation from a full vector or a base+delta pair
    - Random draws and map-position-to-vector lookup
    - Video rendering over a keyframe list

    Every call may fail; implementations raise ServiceError subclasses
    and never retry on their own.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service identifier (e.g. 'http', 'mock')."""
        pass

    @abstractmethod
    async def get_training_data(self) -> List[List[float]]:
        """Fixed reference vectors shown as background scatter."""
        pass

    @abstractmethod
    async def generate_batch(self, vectors: Sequence[Sequence[float]]) -> List[Any]:
        """
        Generate one preview image per vector, in order.

        Args:
            vectors: Latent vectors (one per requested image)

        Returns:
            Image handles matching the input order
        """
        pass

    @abstractmethod
    async def generate_image(self, vector: Sequence[float]) -> Any:
        """Exact generation from a full latent vector."""
        pass

    @abstractmethod
    async def generate_edited_image(
        self, base_vector: Sequence[float], slider_values: Sequence[float]
    ) -> Any:
        """Exact generation from a base vector modulated by slider deltas."""
        pass

    @abstractmethod
    async def get_random_vector(self) -> List[float]:
        """Draw a random latent (base) vector."""
        pass

    @abstractmethod
    async def get_vector_from_map(
        self, x: float, y: float, x_index: int, y_index: int
    ) -> List[float]:
        """Full latent vector for a point on the 2D map of the given axes."""
        pass

    @abstractmethod
    async def render_video(self, keyframes: List[Dict[str, Any]], fps: int = 24) -> str:
        """
        Render an interpolated video over the keyframes.

        Args:
            keyframes: Render payload entries (snapshot fields + duration)
            fps: Output frame rate

        Returns:
            URL of the rendered video
        """
        pass

    async def list_models(self) -> List[str]:
        """Available model files. Override if the service manages models."""
        return []

    async def load_model(self, model_name: str) -> bool:
        """Switch the active model. Override if the service manages models."""
        return False

    async def upload_model(self, path: Path) -> bool:
        """Upload a model file. Override if the service manages models."""
        return False

    async def download_video(self, url: str, path: Optional[Path] = None) -> Path:
        """Save a rendered video locally. Override if videos are fetchable."""
        raise NotImplementedError(f"{self.name} service cannot download videos")

    async def close(self) -> None:
        """Release any held connections."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
