"""Nearest cache-point lookup for hover previews.

The kd_tree backend uses cuML on a GPU when it is installed, otherwise
sklearn. LATENTNAV_FORCE_CPU=1 keeps it on sklearn.
"""
# pylint: disable=import-outside-toplevel

import os
from typing import List, Optional, Tuple

import numpy as np

from .grid import CacheGrid, CachePoint

# Candidates pulled from the tree backend before exact re-ranking
_TREE_CANDIDATES = 8


def _use_gpu() -> bool:
    if os.environ.get("LATENTNAV_FORCE_CPU", "").lower() in ("1", "true"):
        return False
    try:
        import cupy
        from cuml.neighbors import NearestNeighbors  # noqa: F401
        return cupy.cuda.runtime.getDeviceCount() > 0
    except Exception:
        return False


def _fit_tree(coords: np.ndarray, n_neighbors: int):
    """NearestNeighbors model over grid coordinates, on GPU when available."""
    if _use_gpu():
        from cuml.neighbors import NearestNeighbors
        print(f"[KNN] Fitting cuML index on {len(coords)} grid points")
        model = NearestNeighbors(n_neighbors=n_neighbors)
    else:
        from sklearn.neighbors import NearestNeighbors
        print(f"[KNN] Fitting sklearn kd-tree on {len(coords)} grid points")
        model = NearestNeighbors(n_neighbors=n_neighbors, algorithm="kd_tree")
    return model.fit(coords)


class NearestNeighborIndex:
    """Lookup over one CacheGrid snapshot.

    Distance is squared Euclidean in latent (x, y). Ties keep the point
    inserted first. The default backend is an exhaustive scan, which is
    plenty for grids of a few thousand points; algorithm="kd_tree" fits
    a NearestNeighbors model and re-ranks its candidates exactly so the
    answer is identical.
    """

    def __init__(self, grid: CacheGrid, algorithm: str = "brute"):
        if algorithm not in ("brute", "kd_tree"):
            raise ValueError(f"Unknown algorithm: '{algorithm}'. Available: ['brute', 'kd_tree']")
        self.grid = grid
        self.algorithm = algorithm
        self._coords = grid.coords()
        self._nn_model = None
        if algorithm == "kd_tree" and len(grid) > 0:
            self._fit()

    def _fit(self):
        self._nn_model = _fit_tree(self._coords, min(_TREE_CANDIDATES, len(self._coords)))

    def __len__(self) -> int:
        return len(self._coords)

    def _squared_distances(self, x: float, y: float) -> np.ndarray:
        dx = self._coords[:, 0] - x
        dy = self._coords[:, 1] - y
        return dx * dx + dy * dy

    def nearest_with_distance(self, x: float, y: float) -> Optional[Tuple[CachePoint, float]]:
        """Return (point, squared distance) for the closest point, or None if empty."""
        if len(self._coords) == 0:
            return None

        if self._nn_model is not None:
            idx, dist = self._tree_nearest(x, y)
        else:
            dists = self._squared_distances(x, y)
            idx = int(np.argmin(dists))  # first occurrence wins ties
            dist = float(dists[idx])
        return self.grid.points[idx], dist

    def _tree_nearest(self, x: float, y: float) -> Tuple[int, float]:
        k = min(_TREE_CANDIDATES, len(self._coords))
        _, indices = self._nn_model.kneighbors(np.array([[x, y]]), n_neighbors=k)
        # cuML hands back cupy arrays
        indices = indices.get() if hasattr(indices, "get") else np.asarray(indices)
        candidates = np.sort(indices[0].astype(np.int64))

        cand = self._coords[candidates]
        dists = (cand[:, 0] - x) ** 2 + (cand[:, 1] - y) ** 2
        best = float(dists.min())
        if k < len(self._coords) and np.all(dists == best):
            # Every candidate tied: an earlier point may sit outside the window
            full = self._squared_distances(x, y)
            idx = int(np.argmin(full))
            return idx, float(full[idx])
        pos = int(np.argmin(dists))
        return int(candidates[pos]), best

    def nearest(self, x: float, y: float) -> Optional[CachePoint]:
        """Closest cache point to (x, y), or None if the grid is empty."""
        result = self.nearest_with_distance(x, y)
        return result[0] if result is not None else None

    def neighbors(self, x: float, y: float, k: int = 5) -> List[Tuple[CachePoint, float]]:
        """k closest points as (point, squared distance), ties in insertion order."""
        if len(self._coords) == 0 or k <= 0:
            return []
        dists = self._squared_distances(x, y)
        order = np.argsort(dists, kind="stable")[:k]
        return [(self.grid.points[int(i)], float(dists[i])) for i in order]
