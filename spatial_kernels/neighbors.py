"""Brute-force neighbor search over point coordinates within group partitions."""

from __future__ import annotations

import logging

import numpy as np
from numba import jit

from .arrays import as_numeric_matrix
from .errors import ShapeMismatch
from .metrics import Metric
from .models import NeighborLists
from .parallel import map_points

logger = logging.getLogger(__name__)

RADIAL = 1
MANHATTAN = 2
MINKOWSKI = 3
CHEBYSHEV = 4


@jit(nopython=True, nogil=True)
def scan_neighbors(coord, groups, i, radius, metric, minkowski_fallthrough, is_neighbor):
    """Mark every same-group point within `radius` of point `i`.

    Fills the boolean buffer `is_neighbor` (one slot per point) and returns the
    number of marked points. Compiled once per coordinate dtype.

    :param coord: Coordinates with shape (n_points, n_dims)
    :param groups: Integer group label per point
    :param i: Index of the query point
    :param radius: Acceptance radius
    :param metric: Integer metric code (1=radial, 2=manhattan, 3=minkowski, 4=chebyshev)
    :param minkowski_fallthrough: Apply the running max-replace after each minkowski term
    :param is_neighbor: Output buffer of length n_points
    :return: Number of neighbors found
    """
    n_points = coord.shape[0]
    n_dims = coord.shape[1]
    count = 0

    for ii in range(n_points):
        is_neighbor[ii] = False
        if groups[i] != groups[ii]:
            continue

        d2 = 0.0
        for j in range(n_dims):
            d = float(coord[i, j]) - float(coord[ii, j])
            ad = abs(d)
            if metric == RADIAL:
                d2 += d * d
            elif metric == MANHATTAN:
                d2 += ad
            elif metric == MINKOWSKI:
                d2 += ad ** n_dims
                if minkowski_fallthrough and ad > d2:
                    d2 = ad
            elif ad > d2:
                d2 = ad

        if metric == RADIAL:
            accept = np.sqrt(d2) <= radius
        elif metric == MINKOWSKI:
            accept = d2 ** (1.0 / n_dims) <= radius
        else:
            accept = d2 <= radius

        if accept:
            is_neighbor[ii] = True
            count += 1

    return count


def find_neighbors(
    coord: np.ndarray,
    radius: float,
    groups: np.ndarray | None = None,
    metric: Metric | str | int = Metric.RADIAL,
    *,
    minkowski_fallthrough: bool = False,
    n_jobs: int | None = 1,
) -> NeighborLists:
    """Return the same-group neighbors within `radius` of every point.

    Every point is compared with every other point (O(n^2 * d)); each list is
    in ascending index order and contains the point itself.

    Minkowski uses order ``p = n_dims``. With `minkowski_fallthrough=True` each
    per-dimension term is followed by ``acc = max(|d|, acc)``, which reproduces
    the legacy neighbor sets exactly.
    """
    coords = as_numeric_matrix(coord, "coord")
    n_points = coords.shape[0]
    resolved = Metric.from_value(metric)

    if not radius >= 0:
        raise ValueError("radius must be >= 0")

    if coords.shape[1] == 0:
        raise ShapeMismatch("coord must have at least one spatial dimension")

    if groups is None:
        labels = np.zeros(n_points, dtype=np.int64)
    else:
        labels = np.asarray(groups)
        if labels.shape != (n_points,):
            raise ShapeMismatch(
                f"groups must have shape ({n_points},), got {labels.shape}"
            )
        if labels.dtype.kind not in "iu":
            # Factorize arbitrary labels so the compiled kernel only sees integers.
            _, labels = np.unique(labels, return_inverse=True)
        labels = labels.astype(np.int64, copy=False)

    coords = np.ascontiguousarray(coords)
    code = resolved.code
    fallthrough = bool(minkowski_fallthrough and resolved is Metric.MINKOWSKI)

    def _row(i: int) -> np.ndarray:
        is_neighbor = np.empty(n_points, dtype=np.bool_)
        scan_neighbors(coords, labels, i, float(radius), code, fallthrough, is_neighbor)
        return np.flatnonzero(is_neighbor)

    rows = map_points(_row, n_points, n_jobs)
    neighbors = NeighborLists.from_lists(rows)

    logger.debug(
        "found neighbors for %d points (metric=%s, radius=%s, mean size=%.2f)",
        n_points,
        resolved.value,
        radius,
        float(neighbors.lengths.mean()) if n_points else 0.0,
    )
    return neighbors
