"""
Navigator: one latent-space exploration session.

Wires the engine components together behind the operations the UI
calls (hover, click, sliders, axis/range selection, keyframes, render).

Session model:
- SessionState lives in the coordinator and only changes through pure
  updates; busy-gated actions commit through sequence tokens
- The cache grid is owned by the builder and swapped whole; the hover
  index is refit lazily whenever the builder publishes a new grid
- Hover is never gated by Busy and only reads the grid
"""

from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd

from latentnav.config import EngineConfig
from latentnav.core.composer import VectorComposer
from latentnav.core.coordinator import ActionOutcome, GenerationRequestCoordinator
from latentnav.core.errors import ServiceError, ValidationError
from latentnav.core.grid import CacheGrid, CacheGridBuilder, CachePoint
from latentnav.core.mapper import CoordinateMapper
from latentnav.core.neighbors import NearestNeighborIndex
from latentnav.core.state import AxisBinding, SessionState, with_binding, with_ranges
from latentnav.core.timeline import Keyframe, KeyframeTimeline
from latentnav.data.training import training_frame
from latentnav.service.registry import get_service


def create_service(config: EngineConfig):
    """Instantiate the configured generation service."""
    if config.use_mock:
        cls = get_service("mock")
        return cls(
            latent_dim=config.latent_dim,
            training_points=config.training_points,
            seed=config.training_seed,
        )
    cls = get_service("http")
    return cls(base_url=config.server_url, timeout=config.request_timeout)


class Navigator:
    """Session façade over the navigation engine."""

    def __init__(self, config: EngineConfig = None, service=None):
        """Initialize a session.

        Args:
            config: Engine configuration (defaults if None)
            service: GenerationService instance (built from config if None)
        """
        self.config = (config or EngineConfig()).validate()
        self.service = service if service is not None else create_service(self.config)

        self.mapper = CoordinateMapper(self.config.plot_size)
        self.composer = VectorComposer(self.config.mode)
        self.timeline = KeyframeTimeline(default_duration=self.config.default_duration)
        self.grid_builder = CacheGridBuilder(
            self.service,
            latent_dim=self.config.latent_dim,
            grid_size=self.config.grid_size,
            chunk_size=self.config.chunk_size,
        )
        self.coordinator = GenerationRequestCoordinator(
            self.service,
            self.composer,
            SessionState.initial(
                self.config.latent_dim,
                self.config.axis_range,
                multipliers=self.config.range_multipliers,
                range_base=self.config.range_base,
            ),
            timeout=self.config.request_timeout,
        )

        self.training_df: pd.DataFrame = training_frame([], self.config.latent_dim)
        self.video_url: Optional[str] = None
        self._index: Optional[NearestNeighborIndex] = None

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self.coordinator.state

    @property
    def grid(self) -> CacheGrid:
        return self.grid_builder.grid

    @property
    def busy(self) -> bool:
        return self.coordinator.busy

    def marker(self) -> Optional[Tuple[float, float]]:
        return self.composer.marker(self.state)

    def slider_step(self, index: int) -> float:
        return self.state.ranges.slider_step(index)

    def range_kinds(self) -> List[str]:
        ranges = self.state.ranges
        return [ranges.kind(i) for i in range(len(ranges))]

    # ------------------------------------------------------------------
    # Startup and cache grid
    # ------------------------------------------------------------------

    async def start(self, build_grid: bool = True) -> None:
        """Load the training scatter and build the initial preview grid."""
        try:
            vectors = await self.service.get_training_data()
        except ServiceError as e:
            print(f"[Navigator] Training data unavailable: {e}")
            vectors = []
        self.training_df = training_frame(vectors, self.config.latent_dim)
        print(f"[Navigator] Loaded {len(self.training_df)} training points")
        if build_grid:
            await self.rebuild_grid()

    async def rebuild_grid(self, progress: Optional[Callable[[int, int], None]] = None) -> CacheGrid:
        """Rebuild the preview grid for the current binding and ranges."""
        state = self.state
        rx, ry = state.bound_ranges
        return await self.grid_builder.build(state.binding, rx, ry, progress=progress)

    def _invalidate_grid(self) -> None:
        state = self.state
        rx, ry = state.bound_ranges
        self.grid_builder.invalidate(state.binding, rx, ry)

    def grid_is_current(self) -> bool:
        state = self.state
        rx, ry = state.bound_ranges
        return self.grid.matches(state.binding, rx, ry) and not self.grid.is_empty

    async def set_axis(self, x_index: Optional[int] = None, y_index: Optional[int] = None) -> bool:
        """Change the axis binding. Returns False if the binding was rejected.

        The grid is invalidated immediately and rebuilt when
        auto_rebuild_grid is on. Slider values are left alone.
        """
        current = self.state.binding
        try:
            binding = AxisBinding(
                x_index=current.x_index if x_index is None else int(x_index),
                y_index=current.y_index if y_index is None else int(y_index),
            )
            self.coordinator.update(lambda s: with_binding(s, binding))
        except ValidationError as e:
            print(f"[Navigator] Axis change rejected: {e}")
            self.coordinator.update(lambda s: replace(s, last_error=str(e)))
            return False

        if binding == current:
            return True
        self._invalidate_grid()
        if self.config.auto_rebuild_grid:
            await self.rebuild_grid()
        return True

    async def set_range_kind(self, index: int, kind: str) -> None:
        """Set a component's slider/axis width to fine, normal or coarse."""
        ranges = self.state.ranges.with_kind(index, kind)
        self._apply_ranges(ranges)
        if self.config.rebuild_on_range_change and not self.grid_is_current():
            await self.rebuild_grid()

    def _apply_ranges(self, ranges) -> None:
        before = self.state.bound_ranges
        self.coordinator.update(lambda s: with_ranges(s, ranges))
        if self.state.bound_ranges != before:
            self._invalidate_grid()

    # ------------------------------------------------------------------
    # Pointer interaction
    # ------------------------------------------------------------------

    def to_latent(self, pixel_x: float, pixel_y: float, size: Optional[float] = None) -> Tuple[float, float]:
        """Pixel position on the map to latent (x, y) on the bound axes."""
        mapper = self.mapper if size is None else CoordinateMapper(size)
        rx, ry = self.state.bound_ranges
        return mapper.to_latent(pixel_x, pixel_y, rx, ry)

    def _hover_index(self) -> NearestNeighborIndex:
        grid = self.grid
        if self._index is None or self._index.grid is not grid:
            self._index = NearestNeighborIndex(grid, algorithm=self.config.knn_algorithm)
        return self._index

    def hover(self, pixel_x: float, pixel_y: float, size: Optional[float] = None) -> Optional[CachePoint]:
        """Nearest cached preview under the pointer, or None without a grid."""
        x, y = self.to_latent(pixel_x, pixel_y, size)
        return self._hover_index().nearest(x, y)

    async def click(self, pixel_x: float, pixel_y: float, size: Optional[float] = None) -> ActionOutcome:
        """Commit the clicked map position and generate its exact image."""
        x, y = self.to_latent(pixel_x, pixel_y, size)
        outcome = await self.coordinator.click(x, y)
        if outcome.ok:
            self.video_url = None
        return outcome

    async def set_slider(self, index: int, value: float) -> ActionOutcome:
        return await self.coordinator.edit_slider(index, value)

    async def randomize(self) -> ActionOutcome:
        return await self.coordinator.randomize()

    def cancel(self) -> bool:
        return self.coordinator.cancel()

    # ------------------------------------------------------------------
    # Keyframes
    # ------------------------------------------------------------------

    def save_keyframe(self) -> Keyframe:
        """Append the current image as a keyframe, or overwrite the one being edited."""
        state = self.state
        if state.image is None:
            raise ValidationError("Generate an image before saving a keyframe")
        snapshot = self.composer.snapshot(state)
        if state.editing_id is not None and self.timeline.get(state.editing_id) is not None:
            frame = self.timeline.update(state.editing_id, snapshot, image=state.image)
        else:
            frame = self.timeline.append(snapshot, image=state.image)
        self.coordinator.update(lambda s: replace(s, editing_id=None))
        return frame

    def select_for_edit(self, frame_id: int) -> Keyframe:
        """Load a keyframe back into the session and mark it as being edited."""
        frame = self.timeline.get(frame_id)
        if frame is None:
            raise ValidationError(f"Unknown keyframe id: {frame_id}")
        self.coordinator.update(
            lambda s: replace(
                self.composer.restore(s, frame.snapshot),
                image=frame.image,
                exact_click=None,
                editing_id=frame.id,
            )
        )
        return frame

    def move_keyframe(self, index: int, direction: int) -> bool:
        return self.timeline.move(index, direction)

    def delete_keyframe(self, index: int) -> Keyframe:
        frame = self.timeline.delete(index)
        if self.state.editing_id == frame.id:
            self.coordinator.update(lambda s: replace(s, editing_id=None))
        return frame

    def set_duration(self, index: int, value: float) -> Keyframe:
        return self.timeline.set_duration(index, value)

    async def render(self) -> ActionOutcome:
        """Render the timeline to video; video_url is set on success."""
        outcome = await self.coordinator.render(self.timeline, fps=self.config.fps)
        if outcome.ok:
            self.video_url = outcome.value
        return outcome

    # ------------------------------------------------------------------
    # Model management pass-through
    # ------------------------------------------------------------------

    async def list_models(self) -> List[str]:
        try:
            return await self.service.list_models()
        except ServiceError as e:
            print(f"[Navigator] Failed to fetch models: {e}")
            return []

    async def load_model(self, model_name: str) -> bool:
        """Switch model; the cached previews belong to the old model, so drop them."""
        try:
            ok = await self.service.load_model(model_name)
        except ServiceError as e:
            print(f"[Navigator] Switch to {model_name} failed: {e}")
            self.coordinator.update(lambda s: replace(s, last_error=f"Failed to load model: {e}"))
            return False
        if ok:
            self._invalidate_grid()
            if self.config.auto_rebuild_grid:
                await self.rebuild_grid()
        return ok

    def summary(self) -> Dict[str, Any]:
        state = self.state
        return {
            "binding": (state.binding.x_index, state.binding.y_index),
            "ranges": state.bound_ranges,
            "grid_points": len(self.grid),
            "keyframes": len(self.timeline),
            "busy": state.busy,
            "editing": state.editing_id,
            "error": state.last_error,
        }
