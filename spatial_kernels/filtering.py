"""Weighted-average smoothing of features over each point's neighborhood."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from .arrays import as_numeric_matrix, check_weights_aligned
from .errors import ShapeMismatch
from .models import NeighborLists, WeightPair
from .parallel import map_points
from .scores import normalized_weights


def spatial_filter(
    x: np.ndarray,
    weights: Sequence[WeightPair],
    neighbors: NeighborLists,
    n_jobs: int | None = 1,
) -> np.ndarray:
    """Return smoothed features with the same shape as `x` (n_features, n_points).

    Column i is the convex combination of the columns of point i's neighbors,
    weighted by alpha * beta normalized to sum to one.
    """
    x_arr = as_numeric_matrix(x, "x")
    if x_arr.shape[1] != neighbors.n_points:
        raise ShapeMismatch(
            f"x has {x_arr.shape[1]} points but neighbor lists cover {neighbors.n_points}"
        )

    check_weights_aligned(weights, neighbors)
    neighbors.check_bounds(x_arr.shape[1])

    def _smooth(i: int) -> np.ndarray:
        w = normalized_weights(weights[i], i)
        nb_x = x_arr[:, neighbors[i]].astype(np.float64, copy=False)
        return np.einsum("jl,l->j", nb_x, w, optimize=False)

    columns = map_points(_smooth, neighbors.n_points, n_jobs)
    if not columns:
        return np.zeros((x_arr.shape[0], 0), dtype=np.float64)
    return np.column_stack(columns)
