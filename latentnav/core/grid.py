"""
Preview cache grid over the current axis binding.

A CacheGrid is a G x G lattice of preview images covering the bound
pair of latent components. Each sample vector is zero everywhere except
the two bound components. A grid is only valid for the binding and
half-ranges that produced it: any change replaces it wholesale, there
is no incremental update.

Grids are immutable and the builder swaps its current grid as a single
reference, so readers never see a grid that is still being fetched.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from .errors import ServiceError
from .state import AxisBinding


@dataclass(frozen=True)
class CachePoint:
    """One cached preview: latent (x, y) on the bound axes plus its image handle."""
    x: float
    y: float
    image: Any


@dataclass(frozen=True)
class CacheGrid:
    """Immutable set of cache points tagged with the binding/ranges that built it."""
    binding: Optional[AxisBinding] = None
    range_x: float = 0.0
    range_y: float = 0.0
    points: Tuple[CachePoint, ...] = ()

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    @property
    def is_empty(self) -> bool:
        return not self.points

    def matches(self, binding: AxisBinding, range_x: float, range_y: float) -> bool:
        """True if this grid was built for exactly this binding and ranges."""
        return (
            self.binding == binding
            and self.range_x == range_x
            and self.range_y == range_y
        )

    def coords(self) -> np.ndarray:
        """(N, 2) array of point coordinates in insertion order."""
        if not self.points:
            return np.empty((0, 2), dtype=np.float64)
        return np.array([(p.x, p.y) for p in self.points], dtype=np.float64)


def grid_request_vectors(
    binding: AxisBinding,
    range_x: float,
    range_y: float,
    grid_size: int,
    latent_dim: int,
) -> Tuple[np.ndarray, List[Tuple[float, float]]]:
    """Build the G^2 request vectors for a grid.

    Cell (i, j) sits at x = (i/(G-1))*(2*rx) - rx, y = (j/(G-1))*(2*ry) - ry,
    with i as the outer loop. Returns (vectors, coords) in request order.
    """
    if grid_size < 2:
        raise ValueError(f"grid_size must be >= 2, got {grid_size}")
    binding.validate(latent_dim)

    steps = np.arange(grid_size) / (grid_size - 1)
    xs = steps * (range_x * 2) - range_x
    ys = steps * (range_y * 2) - range_y

    vectors = np.zeros((grid_size * grid_size, latent_dim), dtype=np.float64)
    coords = []
    row = 0
    for x_val in xs:
        for y_val in ys:
            vectors[row, binding.x_index] = x_val
            vectors[row, binding.y_index] = y_val
            coords.append((float(x_val), float(y_val)))
            row += 1
    return vectors, coords


class CacheGridBuilder:
    """Builds and replaces the preview grid through the generation service.

    Requests go out in chunks of `chunk_size` vectors. A failed chunk is
    printed and skipped; the finished grid simply lacks those points.
    Starting a build discards the previous grid immediately, and a build
    that is overtaken by a newer build or invalidation never publishes
    its result.
    """

    def __init__(self, service, latent_dim: int, grid_size: int = 10, chunk_size: int = 10):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        if grid_size < 2:
            raise ValueError(f"grid_size must be >= 2, got {grid_size}")
        self.service = service
        self.latent_dim = latent_dim
        self.grid_size = grid_size
        self.chunk_size = chunk_size
        self._grid = CacheGrid()
        self._token = 0
        self._building = False

    @property
    def grid(self) -> CacheGrid:
        return self._grid

    @property
    def is_building(self) -> bool:
        return self._building

    def invalidate(self, binding: Optional[AxisBinding] = None, range_x: float = 0.0, range_y: float = 0.0) -> CacheGrid:
        """Drop the current grid and cancel any build in flight."""
        self._token += 1
        self._building = False
        self._grid = CacheGrid(binding=binding, range_x=range_x, range_y=range_y)
        return self._grid

    async def build(
        self,
        binding: AxisBinding,
        range_x: float,
        range_y: float,
        progress: Optional[Callable[[int, int], None]] = None,
    ) -> CacheGrid:
        """Fetch a fresh grid for binding/ranges and publish it.

        Args:
            binding: Axis pair to sample
            range_x: Half-range of the x component
            range_y: Half-range of the y component
            progress: Optional callback(chunks_done, chunks_total)

        Returns:
            The published grid, or the current grid if this build was superseded
        """
        vectors, coords = grid_request_vectors(
            binding, range_x, range_y, self.grid_size, self.latent_dim
        )
        self.invalidate(binding, range_x, range_y)
        token = self._token
        self._building = True

        total_chunks = math.ceil(len(vectors) / self.chunk_size)
        points: List[CachePoint] = []
        failed = 0
        print(
            f"[Grid] Building {self.grid_size}x{self.grid_size} grid on components "
            f"({binding.x_index}, {binding.y_index}), range ({range_x}, {range_y})"
        )

        try:
            for chunk_idx, start in enumerate(range(0, len(vectors), self.chunk_size)):
                vector_chunk = vectors[start:start + self.chunk_size]
                coord_chunk = coords[start:start + self.chunk_size]

                try:
                    images = await self.service.generate_batch(vector_chunk.tolist())
                except ServiceError as e:
                    failed += 1
                    print(f"[Grid] Chunk {chunk_idx + 1}/{total_chunks} failed: {e}")
                    images = None

                if token != self._token:
                    print(f"[Grid] Build for ({binding.x_index}, {binding.y_index}) superseded")
                    return self._grid

                if images is not None:
                    if len(images) != len(coord_chunk):
                        print(
                            f"[Grid] Chunk {chunk_idx + 1} returned {len(images)} images "
                            f"for {len(coord_chunk)} vectors"
                        )
                    for (x_val, y_val), image in zip(coord_chunk, images):
                        points.append(CachePoint(x=x_val, y=y_val, image=image))
                    print(f"[Grid] Loaded chunk {chunk_idx + 1}/{total_chunks}")

                if progress is not None:
                    progress(chunk_idx + 1, total_chunks)
        finally:
            if token == self._token:
                self._building = False

        self._grid = CacheGrid(
            binding=binding, range_x=range_x, range_y=range_y, points=tuple(points)
        )
        if failed:
            print(f"[Grid] Done with {failed} failed chunk(s): {len(points)}/{len(vectors)} points")
        else:
            print(f"[Grid] Done: {len(points)} points")
        return self._grid
