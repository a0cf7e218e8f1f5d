"""Navigation engine: coordinates, cache grid, composition, timeline, requests."""

from .composer import (
    BaseDeltaSnapshot,
    CompositionMode,
    DirectSnapshot,
    GenerationRequest,
    VectorComposer,
)
from .coordinator import ActionOutcome, GenerationRequestCoordinator
from .errors import (
    BusyError,
    LatentNavError,
    NonOkResponseError,
    ServiceError,
    ServiceUnavailableError,
    StaleResponseError,
    ValidationError,
)
from .grid import CacheGrid, CacheGridBuilder, CachePoint, grid_request_vectors
from .mapper import CoordinateMapper
from .neighbors import NearestNeighborIndex
from .state import RANGE_MULTIPLIERS, AxisBinding, RangeTable, SessionState
from .timeline import Keyframe, KeyframeTimeline

__all__ = [
    "ActionOutcome",
    "AxisBinding",
    "BaseDeltaSnapshot",
    "BusyError",
    "CacheGrid",
    "CacheGridBuilder",
    "CachePoint",
    "CompositionMode",
    "CoordinateMapper",
    "DirectSnapshot",
    "GenerationRequest",
    "GenerationRequestCoordinator",
    "Keyframe",
    "KeyframeTimeline",
    "LatentNavError",
    "NearestNeighborIndex",
    "NonOkResponseError",
    "RANGE_MULTIPLIERS",
    "RangeTable",
    "ServiceError",
    "ServiceUnavailableError",
    "SessionState",
    "StaleResponseError",
    "ValidationError",
    "VectorComposer",
    "grid_request_vectors",
]
