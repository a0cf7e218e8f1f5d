"""
HTTP client for the generation server.

Endpoints (JSON unless noted):
    GET  /training_data   -> {"vectors": [[...], ...]}
    POST /generate_batch  {"vectors"}                       -> {"images": [...]}
    POST /generate        {"vector"}                        -> {"image"}
    POST /generate_edited {"base_vector", "slider_values"}  -> {"image"}
    GET  /random_vector   -> {"vector"}
    POST /map_to_vector   {"x", "y", "x_component", "y_component"} -> {"vector"}
    POST /render_video    {"keyframes", "fps"}              -> {"url"}
    GET  /models          -> {"models": [...]}
    POST /load_model?model_name=...
    POST /upload_model    (multipart "file")

No retries: every failure surfaces as a ServiceError.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import httpx

from latentnav.core.errors import NonOkResponseError, ServiceUnavailableError

from .base import GenerationService
from .registry import register_service

SERVER_URL = os.environ.get("LATENTNAV_SERVER_URL", "http://localhost:8000")
DEFAULT_VIDEO_NAME = "latent-exploration.mp4"


def _items(path: str, value: Any) -> List[Any]:
    if not isinstance(value, list):
        raise ServiceUnavailableError(f"{path} returned {type(value).__name__}, expected a list")
    return value


def _floats(path: str, value: Any) -> List[float]:
    """Numeric list from a response field; bools and strings are rejected."""
    items = _items(path, value)
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in items):
        raise ServiceUnavailableError(f"{path} returned a non-numeric vector")
    return [float(v) for v in items]


@register_service("http")
class HttpGenerationService(GenerationService):
    """Async HTTP client for the generation server."""

    def __init__(
        self,
        base_url: str = SERVER_URL,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Server root URL
            timeout: Per-request timeout in seconds (None waits indefinitely)
            transport: Optional httpx transport (used for testing)
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def name(self) -> str:
        return "http"

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ServiceUnavailableError(f"{url} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ServiceUnavailableError(f"Cannot reach {url}: {e}") from e

        if response.status_code >= 400:
            print(f"[Service] Server error {response.status_code} from {url}")
            raise NonOkResponseError(response.status_code, response.text, endpoint=url)
        return response

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        return await self._send(method, f"{self.base_url}{path}", **kwargs)

    async def _json(self, method: str, path: str, key: str, **kwargs) -> Any:
        response = await self._request(method, path, **kwargs)
        try:
            data = response.json()
        except ValueError as e:
            raise ServiceUnavailableError(f"{path} returned invalid JSON") from e
        if not isinstance(data, dict) or key not in data:
            raise ServiceUnavailableError(f"{path} response missing '{key}'")
        return data[key]

    async def _vector(self, method: str, path: str, **kwargs) -> List[float]:
        vector = _floats(path, await self._json(method, path, "vector", **kwargs))
        if not vector:
            raise ServiceUnavailableError(f"{path} returned an empty vector")
        return vector

    async def get_training_data(self) -> List[List[float]]:
        vectors = _items("/training_data", await self._json("GET", "/training_data", "vectors"))
        return [_floats("/training_data", vec) for vec in vectors]

    async def generate_batch(self, vectors: Sequence[Sequence[float]]) -> List[Any]:
        payload = {"vectors": [list(v) for v in vectors]}
        images = await self._json("POST", "/generate_batch", "images", json=payload)
        return _items("/generate_batch", images)

    async def generate_image(self, vector: Sequence[float]) -> Any:
        return await self._json("POST", "/generate", "image", json={"vector": list(vector)})

    async def generate_edited_image(
        self, base_vector: Sequence[float], slider_values: Sequence[float]
    ) -> Any:
        payload = {"base_vector": list(base_vector), "slider_values": list(slider_values)}
        return await self._json("POST", "/generate_edited", "image", json=payload)

    async def get_random_vector(self) -> List[float]:
        return await self._vector("GET", "/random_vector")

    async def get_vector_from_map(
        self, x: float, y: float, x_index: int, y_index: int
    ) -> List[float]:
        payload = {"x": x, "y": y, "x_component": x_index, "y_component": y_index}
        return await self._vector("POST", "/map_to_vector", json=payload)

    async def render_video(self, keyframes: List[Dict[str, Any]], fps: int = 24) -> str:
        print(f"[Service] Sending video request ({len(keyframes)} keyframes, {fps} fps)")
        url = await self._json(
            "POST", "/render_video", "url", json={"keyframes": keyframes, "fps": fps}
        )
        if not isinstance(url, str) or not url:
            raise ServiceUnavailableError("/render_video returned no video URL")
        return self.resolve_url(url)

    def resolve_url(self, url: str) -> str:
        """Absolute URL for a server-relative path like /videos/x.mp4."""
        if url.startswith(("http://", "https://")):
            return url
        return f"{self.base_url}/{url.lstrip('/')}"

    async def list_models(self) -> List[str]:
        return [str(m) for m in _items("/models", await self._json("GET", "/models", "models"))]

    async def load_model(self, model_name: str) -> bool:
        await self._request("POST", "/load_model", params={"model_name": model_name})
        return True

    async def upload_model(self, path: Path) -> bool:
        path = Path(path)
        with open(path, "rb") as f:
            files = {"file": (path.name, f, "application/octet-stream")}
            await self._request("POST", "/upload_model", files=files)
        print(f"[Service] Uploaded model {path.name}")
        return True

    async def download_video(self, url: str, path: Optional[Path] = None) -> Path:
        path = Path(path) if path is not None else Path(DEFAULT_VIDEO_NAME)
        response = await self._send("GET", self.resolve_url(url))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(response.content)
        print(f"[Service] Saved video to {path} ({len(response.content) / 1e6:.1f} MB)")
        return path

    async def close(self) -> None:
        await self.client.aclose()
