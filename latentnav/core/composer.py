"""
Composition of the vector sent for exact generation.

Two modes, chosen once per session:

- direct: one full latent vector; map clicks write the two bound
  components, sliders write any component.
- base_delta: a (possibly high-dimensional) base vector from the service
  plus a low-dimensional slider delta vector. Both travel to the service
  separately and are never pre-summed, since the service applies the
  deltas as a modulation of the base.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

from .errors import ValidationError
from .state import SessionState


class CompositionMode(str, Enum):
    DIRECT = "direct"
    BASE_DELTA = "base_delta"

    @classmethod
    def parse(cls, value: Union[str, "CompositionMode"]) -> "CompositionMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            available = [m.value for m in cls]
            raise ValueError(f"Unknown composition mode: '{value}'. Available: {available}") from None


@dataclass(frozen=True)
class DirectSnapshot:
    """Saved state for direct mode: the full latent vector."""
    vector: Tuple[float, ...]

    def to_payload(self) -> dict:
        return {"vector": list(self.vector)}


@dataclass(frozen=True)
class BaseDeltaSnapshot:
    """Saved state for base+delta mode."""
    base_vector: Tuple[float, ...]
    slider_values: Tuple[float, ...]

    def to_payload(self) -> dict:
        return {
            "base_vector": list(self.base_vector),
            "slider_values": list(self.slider_values),
        }


Snapshot = Union[DirectSnapshot, BaseDeltaSnapshot]


@dataclass(frozen=True)
class GenerationRequest:
    """Exact-generation request produced by VectorComposer.compose."""
    mode: CompositionMode
    vector: Optional[Tuple[float, ...]] = None
    base_vector: Optional[Tuple[float, ...]] = None
    slider_values: Optional[Tuple[float, ...]] = None

    async def send(self, service):
        """Dispatch to the matching service call, returning the image handle."""
        if self.mode is CompositionMode.DIRECT:
            return await service.generate_image(list(self.vector))
        return await service.generate_edited_image(
            list(self.base_vector), list(self.slider_values)
        )


class VectorComposer:
    """Pure functions from (state, input) to new state or request."""

    def __init__(self, mode: Union[str, CompositionMode] = CompositionMode.BASE_DELTA):
        self.mode = CompositionMode.parse(mode)

    def compose(self, state: SessionState) -> GenerationRequest:
        if self.mode is CompositionMode.DIRECT:
            return GenerationRequest(mode=self.mode, vector=tuple(state.slider_values))
        if not state.base_vector:
            raise ValidationError("No base vector yet: click the map or randomize first")
        return GenerationRequest(
            mode=self.mode,
            base_vector=tuple(state.base_vector),
            slider_values=tuple(state.slider_values),
        )

    def apply_pointer(self, state: SessionState, x: float, y: float) -> SessionState:
        """Record a map click at latent (x, y) and leave edit mode.

        In direct mode the bound components take the click position. In
        base_delta mode the sliders reset; the new base is fetched from
        the service and set with apply_base.
        """
        if self.mode is CompositionMode.DIRECT:
            values = list(state.slider_values)
            values[state.binding.x_index] = float(x)
            values[state.binding.y_index] = float(y)
        else:
            values = [0.0] * state.latent_dim
        return replace(
            state,
            slider_values=tuple(values),
            exact_click=(float(x), float(y)),
            editing_id=None,
        )

    def apply_base(self, state: SessionState, base_vector: Sequence[float]) -> SessionState:
        """Install a fresh base vector and zero the slider deltas."""
        if self.mode is CompositionMode.DIRECT:
            values = [float(v) for v in base_vector][:state.latent_dim]
            values += [0.0] * (state.latent_dim - len(values))
            return replace(state, slider_values=tuple(values))
        return replace(
            state,
            base_vector=tuple(float(v) for v in base_vector),
            slider_values=(0.0,) * state.latent_dim,
        )

    def snapshot(self, state: SessionState) -> Snapshot:
        if self.mode is CompositionMode.DIRECT:
            return DirectSnapshot(vector=tuple(state.slider_values))
        return BaseDeltaSnapshot(
            base_vector=tuple(state.base_vector or ()),
            slider_values=tuple(state.slider_values),
        )

    def restore(self, state: SessionState, snapshot: Snapshot) -> SessionState:
        """Load a saved snapshot back into the live state."""
        if isinstance(snapshot, DirectSnapshot):
            if self.mode is not CompositionMode.DIRECT:
                raise ValidationError("Direct-mode keyframe cannot be loaded in base_delta mode")
            return replace(state, slider_values=tuple(snapshot.vector))
        if self.mode is not CompositionMode.BASE_DELTA:
            raise ValidationError("Base+delta keyframe cannot be loaded in direct mode")
        return replace(
            state,
            base_vector=tuple(snapshot.base_vector),
            slider_values=tuple(snapshot.slider_values),
        )

    def marker(self, state: SessionState) -> Optional[Tuple[float, float]]:
        """Position of the current selection on the map, if any.

        Direct mode follows the bound components so slider edits move
        the marker; it disappears once the vector stops being tied to a
        map click (randomize, edit mode).
        """
        if state.exact_click is None:
            return None
        if self.mode is CompositionMode.DIRECT:
            return (
                state.slider_values[state.binding.x_index],
                state.slider_values[state.binding.y_index],
            )
        return state.exact_click
