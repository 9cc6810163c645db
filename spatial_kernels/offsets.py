"""Per-dimension coordinate offsets of neighbors relative to a center point."""

from __future__ import annotations

import numpy as np

from .arrays import as_numeric_matrix
from .errors import IndexOutOfRange, ShapeMismatch
from .models import NeighborLists
from .parallel import map_points


def spatial_offsets(coord: np.ndarray, neighbors: np.ndarray | None, k: int) -> np.ndarray:
    """Return ``coord[neighbors] - coord[k]`` with one row per neighbor.

    Passing ``neighbors=None`` gives the reference variant with one row per
    point. The result keeps the coordinate dtype; no metric is applied.
    """
    coords = as_numeric_matrix(coord, "coord")
    coords = _signed(coords)
    n_points = coords.shape[0]

    if not 0 <= k < n_points:
        raise IndexOutOfRange(f"center index {k} out of range for {n_points} points")

    if neighbors is None:
        return coords - coords[k]

    idx = np.asarray(neighbors, dtype=np.int64).reshape(-1)
    if idx.size and (idx.min() < 0 or idx.max() >= n_points):
        raise IndexOutOfRange(f"neighbor indices must lie in [0, {n_points})")

    return coords[idx] - coords[k]


def neighborhood_offsets(
    coord: np.ndarray,
    neighbors: NeighborLists,
    n_jobs: int | None = 1,
) -> list[np.ndarray]:
    """Return offsets of every point's neighbor list relative to that point."""
    coords = as_numeric_matrix(coord, "coord")
    coords = _signed(coords)
    neighbors.check_bounds(coords.shape[0])

    if neighbors.n_points != coords.shape[0]:
        raise ShapeMismatch(
            f"neighbor lists cover {neighbors.n_points} points but coord has {coords.shape[0]}"
        )

    return map_points(lambda i: coords[neighbors[i]] - coords[i], neighbors.n_points, n_jobs)


def _signed(coords: np.ndarray) -> np.ndarray:
    # Unsigned subtraction would wrap around for negative offsets.
    if coords.dtype.kind == "u":
        return coords.astype(np.int64)
    return coords
