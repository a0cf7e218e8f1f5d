"""
Unit tests for latentnav.core.neighbors
"""

import numpy as np
import pytest
from sklearn.neighbors import NearestNeighbors

from latentnav.core.grid import CacheGrid, CachePoint, grid_request_vectors
from latentnav.core.neighbors import NearestNeighborIndex
from latentnav.core.state import AxisBinding


def make_grid(coords):
    points = tuple(CachePoint(x, y, f"img{i}") for i, (x, y) in enumerate(coords))
    return CacheGrid(binding=AxisBinding(0, 1), range_x=5.0, range_y=5.0, points=points)


def lattice(grid_size=5, half=5.0):
    _, coords = grid_request_vectors(AxisBinding(0, 1), half, half, grid_size, 2)
    return make_grid(coords)


class TestBruteForce:
    """Test the default exhaustive lookup."""

    def test_exact_hit(self):
        grid = lattice()
        point, dist = NearestNeighborIndex(grid).nearest_with_distance(2.5, -2.5)
        assert (point.x, point.y) == (2.5, -2.5)
        assert dist == 0.0

    def test_nearest(self):
        grid = make_grid([(0.0, 0.0), (3.0, 3.0), (-4.0, 1.0)])
        index = NearestNeighborIndex(grid)
        assert index.nearest(2.0, 2.5).image == "img1"
        assert index.nearest(-10.0, 0.0).image == "img2"

    def test_tie_keeps_first_inserted(self):
        grid = make_grid([(2.0, 0.0), (0.0, 0.0)])
        point = NearestNeighborIndex(grid).nearest(1.0, 0.0)
        assert point.image == "img0"

    def test_empty_grid(self):
        index = NearestNeighborIndex(CacheGrid())
        assert index.nearest(0.0, 0.0) is None
        assert index.nearest_with_distance(0.0, 0.0) is None
        assert index.neighbors(0.0, 0.0) == []

    def test_result_comes_from_grid(self):
        grid = lattice()
        rng = np.random.default_rng(3)
        index = NearestNeighborIndex(grid)
        for x, y in rng.uniform(-8, 8, size=(20, 2)):
            assert index.nearest(x, y) in grid.points

    def test_neighbors_sorted(self):
        grid = make_grid([(0.0, 0.0), (1.0, 0.0), (3.0, 0.0), (-1.0, 0.0)])
        result = NearestNeighborIndex(grid).neighbors(0.1, 0.0, k=3)
        assert [p.image for p, _ in result] == ["img0", "img1", "img3"]
        assert result[0][1] == pytest.approx(0.01)


class TestKdTree:
    """Test that the tree backend returns the same answers."""

    def test_matches_brute(self, monkeypatch):
        monkeypatch.setenv("LATENTNAV_FORCE_CPU", "1")
        grid = lattice(grid_size=10)
        brute = NearestNeighborIndex(grid)
        tree = NearestNeighborIndex(grid, algorithm="kd_tree")
        rng = np.random.default_rng(0)
        for x, y in rng.uniform(-6, 6, size=(50, 2)):
            assert tree.nearest(x, y) is brute.nearest(x, y)

    def test_tie_keeps_first_inserted(self):
        """Test tie-break on a point equidistant from four lattice cells."""
        grid = lattice(grid_size=11)
        tree = NearestNeighborIndex(grid, algorithm="kd_tree")
        brute = NearestNeighborIndex(grid)
        assert tree.nearest(0.5, 0.5) is brute.nearest(0.5, 0.5)

    def test_small_grid(self):
        grid = make_grid([(0.0, 0.0), (1.0, 1.0)])
        tree = NearestNeighborIndex(grid, algorithm="kd_tree")
        assert tree.nearest(0.9, 0.9).image == "img1"

    def test_unknown_algorithm(self):
        with pytest.raises(ValueError):
            NearestNeighborIndex(CacheGrid(), algorithm="ball")

    def test_force_cpu_uses_sklearn(self, monkeypatch):
        monkeypatch.setenv("LATENTNAV_FORCE_CPU", "1")
        tree = NearestNeighborIndex(lattice(grid_size=3), algorithm="kd_tree")
        assert isinstance(tree._nn_model, NearestNeighbors)
        assert tree._nn_model.n_neighbors == 8
