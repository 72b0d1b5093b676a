"""Static nearest-neighbour indices over RGB points.

Every index built here answers the same question: *the k points closest to
a colour, by squared Euclidean distance, lowest insertion index first on
ties*. The selector only depends on that contract, so the KD-tree and the
brute-force scan are interchangeable.
"""

from __future__ import annotations

import logging
import time
from typing import Protocol

import numpy as np
from scipy.spatial import cKDTree

from photo_mosaic.color_utils import squared_distances
from photo_mosaic.errors import IndexQueryFailure, InvalidParams

logger = logging.getLogger(__name__)

# Relative/absolute slack when widening a k-NN query to its tie radius.
_TIE_REL_EPS = 1e-9
_TIE_ABS_EPS = 1e-9


class ColorIndex(Protocol):
    """Build-once, query-k-nearest capability."""

    def __len__(self) -> int: ...

    def query(self, color: np.ndarray, k: int) -> tuple[np.ndarray, np.ndarray]:
        """Return ``(indices, squared_distances)`` of the k nearest points."""
        ...


def adaptive_k(
    n: int,
    k_min: int = 10,
    k_max: int = 100,
    k_divisor: int = 10,
) -> int:
    """Number of candidates to fetch for a library of *n* tiles.

    ``clamp(n // k_divisor, k_min, k_max)``, never more than *n* and never
    less than 1.
    """
    k = min(max(n // k_divisor, k_min), k_max)
    return max(1, min(k, n))


def _as_points(points: np.ndarray) -> np.ndarray:
    pts = np.array(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 3:
        raise ValueError(f"Expected (N, 3) points, got shape {pts.shape}")
    return pts


def _rank(indices: np.ndarray, dist_sq: np.ndarray, k: int) -> tuple[np.ndarray, np.ndarray]:
    """Sort by (distance, index) and keep the first *k*."""
    order = np.lexsort((indices, dist_sq))[:k]
    return indices[order], dist_sq[order]


class _BaseIndex:
    def __init__(self, points: np.ndarray) -> None:
        self._points = _as_points(points)
        self._points.setflags(write=False)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> np.ndarray:
        return self._points

    def _check_query(self, color: np.ndarray, k: int) -> np.ndarray:
        if len(self._points) == 0:
            raise IndexQueryFailure("Colour index is empty")
        if k < 1:
            raise IndexQueryFailure(f"k must be at least 1, got {k}")
        c = np.asarray(color, dtype=np.float64).reshape(-1)
        if c.shape != (3,) or not np.all(np.isfinite(c)):
            raise IndexQueryFailure(f"Query colour must be 3 finite values, got {color!r}")
        return c

    def _all(self, color: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        n = len(self._points)
        return _rank(np.arange(n), squared_distances(self._points, color), n)


class BruteForceColorIndex(_BaseIndex):
    """Linear scan over all points. Reference implementation."""

    def query(self, color: np.ndarray, k: int) -> tuple[np.ndarray, np.ndarray]:
        c = self._check_query(color, k)
        idx, dist = self._all(c)
        return idx[:k], dist[:k]


class KDTreeColorIndex(_BaseIndex):
    """``scipy.spatial.cKDTree`` backed index.

    The tree finds the k-th neighbour distance; a ball query at that radius
    then picks up any points tied with it, so tie-breaking by index does not
    depend on the tree's traversal order.
    """

    def __init__(self, points: np.ndarray) -> None:
        super().__init__(points)
        self._tree = cKDTree(self._points) if len(self._points) else None

    def query(self, color: np.ndarray, k: int) -> tuple[np.ndarray, np.ndarray]:
        c = self._check_query(color, k)
        if k >= len(self._points):
            return self._all(c)

        dist, _ = self._tree.query(c, k=k)
        radius = float(np.max(dist))
        candidates = self._tree.query_ball_point(
            c, r=radius * (1.0 + _TIE_REL_EPS) + _TIE_ABS_EPS,
        )
        cand = np.asarray(candidates, dtype=np.intp)
        return _rank(cand, squared_distances(self._points[cand], c), k)


INDEX_KINDS: dict[str, type[_BaseIndex]] = {
    "kdtree": KDTreeColorIndex,
    "brute": BruteForceColorIndex,
}


def build_index(points: np.ndarray, kind: str = "kdtree") -> ColorIndex:
    """Build an immutable colour index of the given *kind* over *points*."""
    try:
        cls = INDEX_KINDS[kind]
    except KeyError:
        raise InvalidParams(
            f"Unknown index kind {kind!r}; choose from {sorted(INDEX_KINDS)}"
        ) from None

    t0 = time.perf_counter()
    index = cls(points)
    logger.debug(
        "Built %s index over %d colours  (%.3f s)",
        kind, len(index), time.perf_counter() - t0,
    )
    return index
