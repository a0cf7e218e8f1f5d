"""
Sequencing of user-triggered generation requests.

The coordinator is a small state machine: Idle -> Busy -> Idle. Only one
busy-gated action (map click, slider edit, randomize, render) runs at a
time; triggers while Busy are rejected. Every dispatched action gets a
sequence token and its result is committed only if no newer action has
been dispatched since, so a late response can never overwrite newer
state. On failure the session keeps its pre-request values, Busy is
cleared and the error message is recorded.

Hover previews do not pass through here: they only read the cache grid.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional, Tuple

from .composer import CompositionMode, VectorComposer
from .errors import (
    BusyError,
    ServiceError,
    ServiceUnavailableError,
    StaleResponseError,
    ValidationError,
)
from .state import SessionState, with_slider

Updater = Callable[[SessionState], SessionState]
Step = Callable[[SessionState], Awaitable[Tuple[Updater, Any]]]


@dataclass(frozen=True)
class ActionOutcome:
    """Result of one busy-gated action.

    status is one of "ok", "failed" (service error), "rejected"
    (validation or busy) or "stale" (superseded, result dropped).
    """
    action: str
    status: str
    message: Optional[str] = None
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class GenerationRequestCoordinator:
    """Owns the live SessionState and the busy/error lifecycle around it."""

    def __init__(
        self,
        service,
        composer: VectorComposer,
        state: SessionState,
        timeout: Optional[float] = None,
    ):
        self.service = service
        self.composer = composer
        self.timeout = timeout
        self._state = state
        self._sequence = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state.busy

    @property
    def sequence(self) -> int:
        """Token of the most recently dispatched action."""
        return self._sequence

    def update(self, updater: Updater) -> SessionState:
        """Apply a synchronous, non-gated state change (axis, range, edit mode)."""
        self._state = updater(self._state)
        return self._state

    def cancel(self) -> bool:
        """Abandon the in-flight action; its response will be dropped as stale."""
        if not self._state.busy:
            return False
        self._sequence += 1
        self._state = replace(self._state, busy=False, last_error="Request cancelled")
        print(f"[Coordinator] Cancelled in-flight request (now #{self._sequence})")
        return True

    async def _bounded(self, awaitable: Awaitable):
        if self.timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ServiceUnavailableError(f"Request timed out after {self.timeout}s") from None

    def _commit(self, token: int, updater: Updater):
        if token != self._sequence:
            raise StaleResponseError(token, self._sequence)
        self._state = replace(updater(self._state), busy=False, last_error=None)

    def _fail(self, token: int, outcome: ActionOutcome) -> ActionOutcome:
        if token == self._sequence:
            self._state = replace(self._state, busy=False, last_error=outcome.message)
        return outcome

    async def run(self, action: str, step: Step) -> ActionOutcome:
        """Run one busy-gated action.

        Args:
            action: Name used in outcomes and log lines
            step: Coroutine function taking the pre-request state and
                returning (updater, value). The updater is applied to the
                state current at commit time, so non-gated changes made
                while the request was in flight are kept.

        Returns:
            ActionOutcome describing what happened
        """
        if self._state.busy:
            error = BusyError(f"Cannot start '{action}': another request is in progress")
            print(f"[Coordinator] {error}")
            return ActionOutcome(action, "rejected", str(error))

        self._sequence += 1
        token = self._sequence
        before = self._state
        self._state = replace(before, busy=True, last_error=None)

        try:
            updater, value = await self._bounded(step(before))
        except ValidationError as e:
            return self._fail(token, ActionOutcome(action, "rejected", str(e)))
        except ServiceError as e:
            print(f"[Coordinator] '{action}' failed: {e}")
            return self._fail(token, ActionOutcome(action, "failed", str(e)))
        except BaseException as e:
            # Anything else, task cancellation included, still releases Busy
            print(f"[Coordinator] '{action}' aborted: {type(e).__name__}: {e}")
            self._fail(token, ActionOutcome(action, "failed", str(e) or type(e).__name__))
            raise

        try:
            self._commit(token, updater)
        except StaleResponseError as e:
            print(f"[Coordinator] Dropped stale '{action}': {e}")
            return ActionOutcome(action, "stale", str(e))
        return ActionOutcome(action, "ok", value=value)

    def _generated(self, sent: SessionState, image: Any) -> Updater:
        """Updater that commits the vector `sent` was generated from.

        Binding and ranges keep their commit-time values. A base_delta
        click position is dropped if the axes changed meanwhile, since it
        was measured on the old ones.
        """
        base_delta = self.composer.mode is CompositionMode.BASE_DELTA

        def updater(s: SessionState) -> SessionState:
            exact_click = sent.exact_click
            if base_delta and s.binding != sent.binding:
                exact_click = None
            return replace(
                s,
                slider_values=sent.slider_values,
                base_vector=sent.base_vector,
                exact_click=exact_click,
                editing_id=sent.editing_id,
                image=image,
            )

        return updater

    async def click(self, x: float, y: float) -> ActionOutcome:
        """Commit the map position (x, y) and generate its exact image."""
        composer = self.composer

        async def step(state: SessionState):
            sent = composer.apply_pointer(state, x, y)
            if composer.mode is CompositionMode.BASE_DELTA:
                binding = state.binding
                base = await self.service.get_vector_from_map(
                    x, y, binding.x_index, binding.y_index
                )
                sent = composer.apply_base(sent, base)
            image = await composer.compose(sent).send(self.service)
            return self._generated(sent, image), image

        return await self.run("click", step)

    async def edit_slider(self, index: int, value: float) -> ActionOutcome:
        """Set one slider component and regenerate."""
        composer = self.composer

        async def step(state: SessionState):
            sent = with_slider(state, index, value)
            image = await composer.compose(sent).send(self.service)
            return self._generated(sent, image), image

        return await self.run("slider", step)

    async def randomize(self) -> ActionOutcome:
        """Draw a random base vector, reset the sliders and regenerate."""
        composer = self.composer

        async def step(state: SessionState):
            base = await self.service.get_random_vector()
            sent = replace(composer.apply_base(state, base), exact_click=None)
            image = await composer.compose(sent).send(self.service)
            return self._generated(sent, image), image

        return await self.run("randomize", step)

    async def render(self, timeline, fps: int = 24) -> ActionOutcome:
        """Send the timeline to the renderer; value is the video URL."""

        async def step(state: SessionState):
            if len(timeline) < 2:
                raise ValidationError("Add at least 2 keyframes to render a video.")
            url = await self.service.render_video(timeline.to_payload(), fps=fps)
            return (lambda s: s), url

        return await self.run("render", step)
