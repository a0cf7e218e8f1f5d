"""
Unit tests for latentnav.core.grid
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from latentnav.core.errors import NonOkResponseError, ServiceUnavailableError
from latentnav.core.grid import CacheGrid, CacheGridBuilder, CachePoint, grid_request_vectors
from latentnav.core.state import AxisBinding


def make_service(fail_calls=()):
    """Service whose generate_batch labels each vector by its bound components."""
    service = MagicMock()
    calls = []

    async def generate_batch(vectors):
        calls.append(vectors)
        if len(calls) in fail_calls:
            raise ServiceUnavailableError("connection refused")
        return [f"img({v[0]:.1f},{v[1]:.1f})" for v in vectors]

    service.generate_batch = AsyncMock(side_effect=generate_batch)
    service.calls = calls
    return service


class TestGridRequestVectors:
    """Test request vector layout."""

    def test_three_by_three(self):
        """Test that i is the outer loop and only bound components are set."""
        vectors, coords = grid_request_vectors(AxisBinding(2, 5), 5.0, 5.0, 3, 8)

        assert vectors.shape == (9, 8)
        assert coords == [
            (-5.0, -5.0), (-5.0, 0.0), (-5.0, 5.0),
            (0.0, -5.0), (0.0, 0.0), (0.0, 5.0),
            (5.0, -5.0), (5.0, 0.0), (5.0, 5.0),
        ]
        np.testing.assert_allclose(vectors[:, 2], [c[0] for c in coords])
        np.testing.assert_allclose(vectors[:, 5], [c[1] for c in coords])
        others = np.delete(vectors, [2, 5], axis=1)
        assert not others.any()

    def test_asymmetric_ranges(self):
        _, coords = grid_request_vectors(AxisBinding(0, 1), 1.0, 15.0, 2, 4)
        assert coords == [(-1.0, -15.0), (-1.0, 15.0), (1.0, -15.0), (1.0, 15.0)]

    def test_grid_size_too_small(self):
        with pytest.raises(ValueError):
            grid_request_vectors(AxisBinding(0, 1), 5.0, 5.0, 1, 4)


class TestCacheGrid:
    def test_empty(self):
        grid = CacheGrid()
        assert grid.is_empty
        assert len(grid) == 0
        assert grid.coords().shape == (0, 2)

    def test_matches(self):
        grid = CacheGrid(binding=AxisBinding(0, 1), range_x=5.0, range_y=5.0,
                         points=(CachePoint(0.0, 0.0, "a"),))
        assert grid.matches(AxisBinding(0, 1), 5.0, 5.0)
        assert not grid.matches(AxisBinding(0, 2), 5.0, 5.0)
        assert not grid.matches(AxisBinding(0, 1), 5.0, 0.5)


class TestCacheGridBuilder:
    """Test chunked grid builds."""

    def test_build_in_chunks(self):
        """Test that G=3 with chunk 4 issues 4+4+1 and keeps request order."""
        service = make_service()
        builder = CacheGridBuilder(service, latent_dim=4, grid_size=3, chunk_size=4)
        progress = []

        grid = asyncio.run(builder.build(
            AxisBinding(0, 1), 5.0, 5.0, progress=lambda d, t: progress.append((d, t))
        ))

        assert [len(c) for c in service.calls] == [4, 4, 1]
        assert len(grid) == 9
        assert grid.points[0] == CachePoint(-5.0, -5.0, "img(-5.0,-5.0)")
        assert grid.points[-1] == CachePoint(5.0, 5.0, "img(5.0,5.0)")
        assert progress == [(1, 3), (2, 3), (3, 3)]
        assert builder.grid is grid
        assert grid.matches(AxisBinding(0, 1), 5.0, 5.0)
        assert builder.is_building is False

    def test_failed_chunk_skipped(self):
        """Test that a failed chunk is dropped and the rest still publish."""
        service = make_service(fail_calls=(2,))
        builder = CacheGridBuilder(service, latent_dim=4, grid_size=3, chunk_size=4)

        grid = asyncio.run(builder.build(AxisBinding(0, 1), 5.0, 5.0))

        assert len(grid) == 5
        coords = [(p.x, p.y) for p in grid]
        assert (0.0, 0.0) not in coords
        assert (5.0, 5.0) in coords

    def test_non_ok_chunk_skipped(self):
        service = MagicMock()
        service.generate_batch = AsyncMock(side_effect=NonOkResponseError(500, "boom"))
        builder = CacheGridBuilder(service, latent_dim=2, grid_size=2, chunk_size=10)

        grid = asyncio.run(builder.build(AxisBinding(0, 1), 5.0, 5.0))

        assert grid.is_empty
        assert builder.is_building is False

    def test_previous_grid_dropped_before_fetch(self):
        """Test that the old grid is gone as soon as a rebuild starts."""
        service = make_service()
        builder = CacheGridBuilder(service, latent_dim=4, grid_size=2, chunk_size=10)
        asyncio.run(builder.build(AxisBinding(0, 1), 5.0, 5.0))
        assert len(builder.grid) == 4

        seen = []

        async def generate_batch(vectors):
            seen.append(builder.grid)
            return ["x"] * len(vectors)

        service.generate_batch = AsyncMock(side_effect=generate_batch)
        asyncio.run(builder.build(AxisBinding(2, 3), 1.0, 1.0))

        assert seen[0].is_empty
        assert seen[0].binding == AxisBinding(2, 3)
        assert len(builder.grid) == 4

    def test_superseded_build_not_published(self):
        """Test that invalidation during a build stops it from publishing."""
        service = MagicMock()
        builder = CacheGridBuilder(service, latent_dim=4, grid_size=3, chunk_size=4)

        async def generate_batch(vectors):
            builder.invalidate(AxisBinding(1, 2), 5.0, 5.0)
            return ["x"] * len(vectors)

        service.generate_batch = AsyncMock(side_effect=generate_batch)
        grid = asyncio.run(builder.build(AxisBinding(0, 1), 5.0, 5.0))

        assert grid.is_empty
        assert builder.grid.binding == AxisBinding(1, 2)
        assert service.generate_batch.await_count == 1
        assert builder.is_building is False

    def test_newer_build_wins(self):
        """Test that of two overlapping builds only the later one publishes."""
        service = MagicMock()
        release = None

        async def generate_batch(vectors):
            await release.wait()
            return [f"{v[0]:.0f}:{v[1]:.0f}:{v[2]:.0f}" for v in vectors]

        service.generate_batch = AsyncMock(side_effect=generate_batch)
        builder = CacheGridBuilder(service, latent_dim=3, grid_size=2, chunk_size=10)

        async def scenario():
            nonlocal release
            release = asyncio.Event()
            first = asyncio.create_task(builder.build(AxisBinding(0, 1), 5.0, 5.0))
            await asyncio.sleep(0)
            second = asyncio.create_task(builder.build(AxisBinding(0, 2), 5.0, 5.0))
            await asyncio.sleep(0)
            release.set()
            return await first, await second

        _, second_grid = asyncio.run(scenario())

        assert builder.grid is second_grid
        assert builder.grid.binding == AxisBinding(0, 2)
        assert len(builder.grid) == 4

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            CacheGridBuilder(MagicMock(), latent_dim=4, chunk_size=0)
