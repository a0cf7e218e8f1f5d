"""
Keyframe timeline for video rendering.

Keyframes are immutable snapshots; "editing" a keyframe replaces the
record at the same position with a new one carrying the same id. The
first keyframe's duration is ignored by the renderer (it only marks the
start pose); every later duration is the transition time into that frame.
"""

import time
from dataclasses import dataclass, replace
from typing import Any, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from .composer import BaseDeltaSnapshot, CompositionMode, DirectSnapshot, Snapshot
from .errors import ValidationError

DEFAULT_DURATION = 2.0


@dataclass(frozen=True)
class Keyframe:
    id: int
    snapshot: Snapshot
    image: Any = None
    duration: float = DEFAULT_DURATION

    @property
    def mode(self) -> CompositionMode:
        if isinstance(self.snapshot, DirectSnapshot):
            return CompositionMode.DIRECT
        return CompositionMode.BASE_DELTA

    def to_payload(self) -> dict:
        """Render payload for this frame (preview image stripped)."""
        payload = self.snapshot.to_payload()
        payload["duration"] = self.duration
        return payload


class KeyframeTimeline:
    """Ordered keyframes with identity-preserving edits."""

    def __init__(self, default_duration: float = DEFAULT_DURATION):
        if default_duration <= 0:
            raise ValueError(f"default_duration must be positive, got {default_duration}")
        self.default_duration = default_duration
        self._frames: List[Keyframe] = []
        self._last_id = 0

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self):
        return iter(self._frames)

    def __getitem__(self, index: int) -> Keyframe:
        return self._frames[index]

    @property
    def frames(self) -> List[Keyframe]:
        return list(self._frames)

    @property
    def ids(self) -> List[int]:
        return [f.id for f in self._frames]

    def _next_id(self) -> int:
        # Time-based like a wall-clock stamp, but strictly increasing
        now = time.time_ns() // 1_000_000
        self._last_id = max(now, self._last_id + 1)
        return self._last_id

    def _check_index(self, index: int):
        if not 0 <= index < len(self._frames):
            raise ValidationError(f"Keyframe index {index} out of range (0..{len(self._frames) - 1})")

    def index_of(self, frame_id: int) -> Optional[int]:
        for i, frame in enumerate(self._frames):
            if frame.id == frame_id:
                return i
        return None

    def get(self, frame_id: int) -> Optional[Keyframe]:
        idx = self.index_of(frame_id)
        return self._frames[idx] if idx is not None else None

    def append(self, snapshot: Snapshot, image: Any = None) -> Keyframe:
        frame = Keyframe(
            id=self._next_id(), snapshot=snapshot, image=image, duration=self.default_duration
        )
        self._frames.append(frame)
        print(f"[Timeline] Added keyframe {frame.id} ({len(self._frames)} total)")
        return frame

    def update(self, frame_id: int, snapshot: Snapshot, image: Any = None) -> Keyframe:
        """Replace a frame's snapshot and image, keeping its id, position and duration."""
        idx = self.index_of(frame_id)
        if idx is None:
            raise ValidationError(f"Unknown keyframe id: {frame_id}")
        frame = replace(self._frames[idx], snapshot=snapshot, image=image)
        self._frames[idx] = frame
        print(f"[Timeline] Updated keyframe {frame_id} at position {idx}")
        return frame

    def move(self, index: int, direction: int) -> bool:
        """Swap with the neighbour in `direction` (-1 or +1). No-op at the ends."""
        if direction not in (-1, 1):
            raise ValidationError(f"direction must be -1 or +1, got {direction}")
        target = index + direction
        if target < 0 or target >= len(self._frames) or not 0 <= index < len(self._frames):
            return False
        self._frames[index], self._frames[target] = self._frames[target], self._frames[index]
        return True

    def delete(self, index: int) -> Keyframe:
        self._check_index(index)
        frame = self._frames.pop(index)
        print(f"[Timeline] Deleted keyframe {frame.id} ({len(self._frames)} left)")
        return frame

    def set_duration(self, index: int, value: float) -> Keyframe:
        self._check_index(index)
        value = float(value)
        if not value > 0:
            raise ValidationError(f"Duration must be positive, got {value}")
        frame = replace(self._frames[index], duration=value)
        self._frames[index] = frame
        return frame

    def to_payload(self) -> List[dict]:
        return [frame.to_payload() for frame in self._frames]

    def to_frame(self) -> pd.DataFrame:
        """Tabular view for display: one row per keyframe."""
        rows = []
        for position, frame in enumerate(self._frames):
            snap = frame.snapshot
            values = snap.vector if isinstance(snap, DirectSnapshot) else snap.slider_values
            rows.append({
                "position": position,
                "id": frame.id,
                "duration": frame.duration,
                "mode": frame.mode.value,
                "norm": float(np.linalg.norm(values)) if len(values) else 0.0,
            })
        return pd.DataFrame(rows, columns=["position", "id", "duration", "mode", "norm"])

    @classmethod
    def from_payload(
        cls,
        payload: Iterable[dict],
        mode: Union[str, CompositionMode, None] = None,
        default_duration: float = DEFAULT_DURATION,
    ) -> "KeyframeTimeline":
        """Rebuild a timeline from saved render payload entries.

        Mode is inferred per entry from its keys unless given explicitly.
        """
        forced = CompositionMode.parse(mode) if mode is not None else None
        timeline = cls(default_duration=default_duration)
        for i, entry in enumerate(payload):
            entry_mode = forced
            if entry_mode is None:
                entry_mode = CompositionMode.DIRECT if "vector" in entry else CompositionMode.BASE_DELTA
            if entry_mode is CompositionMode.DIRECT:
                if "vector" not in entry:
                    raise ValidationError(f"Keyframe {i} has no 'vector'")
                snapshot = DirectSnapshot(vector=tuple(float(v) for v in entry["vector"]))
            else:
                if "base_vector" not in entry or "slider_values" not in entry:
                    raise ValidationError(f"Keyframe {i} needs 'base_vector' and 'slider_values'")
                snapshot = BaseDeltaSnapshot(
                    base_vector=tuple(float(v) for v in entry["base_vector"]),
                    slider_values=tuple(float(v) for v in entry["slider_values"]),
                )
            timeline.append(snapshot)
            if "duration" in entry:
                timeline.set_duration(len(timeline) - 1, entry["duration"])
        return timeline
