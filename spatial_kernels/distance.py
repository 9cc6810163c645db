"""Spatially aligned, weighted feature distance between two neighborhoods."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from .arrays import as_numeric_matrix, check_weights_aligned
from .errors import ShapeMismatch
from .models import NeighborLists, WeightPair
from .parallel import map_points


def spatial_distance(
    x: np.ndarray,
    ref: np.ndarray,
    offsets: Sequence[np.ndarray],
    ref_offsets: np.ndarray,
    weights: Sequence[WeightPair],
    ref_weights: WeightPair,
    neighbors: NeighborLists,
    tol_dist: float,
    n_jobs: int | None = 1,
) -> np.ndarray:
    """Compare every point's neighborhood in `x` with one reference neighborhood.

    For point i, a neighbor ix and a reference member iy are aligned when the
    squared distance between their offsets is below `tol_dist`. Each aligned
    pair adds ``sqrt(alpha_x * alpha_ref * beta_x * beta_ref)`` times the
    squared feature difference between ``x[:, neighbors[i][ix]]`` and
    ``ref[:, iy]``. The result is the square root of that sum per point.

    Args:
        x: Query features, shape (n_features, n_points)
        ref: Reference neighborhood features, shape (n_features, n_ref)
        offsets: Per-point offsets, offsets[i] has shape (len(neighbors[i]), n_dims)
        ref_offsets: Reference offsets, shape (n_ref, n_dims)
        weights: Per-point weight pairs aligned with `offsets`
        ref_weights: Weight pair aligned with `ref_offsets`
        neighbors: Neighbor lists of the query points
        tol_dist: Squared-offset tolerance for spatial alignment

    Returns:
        Distance per query point, shape (n_points,)
    """
    x_arr = as_numeric_matrix(x, "x")
    ref_arr = as_numeric_matrix(ref, "ref").astype(np.float64, copy=False)
    ref_off = as_numeric_matrix(ref_offsets, "ref_offsets").astype(np.float64, copy=False)

    if ref_arr.shape[0] != x_arr.shape[0]:
        raise ShapeMismatch(
            f"x has {x_arr.shape[0]} features but ref has {ref_arr.shape[0]}"
        )

    n_ref = ref_off.shape[0]
    if ref_arr.shape[1] != n_ref or len(ref_weights) != n_ref:
        raise ShapeMismatch(
            f"ref ({ref_arr.shape[1]} columns), ref_offsets ({n_ref} rows) and "
            f"ref_weights ({len(ref_weights)}) must have the same length"
        )

    check_weights_aligned(weights, neighbors, offsets)
    neighbors.check_bounds(x_arr.shape[1])

    n_dims = ref_off.shape[1]
    ref_w = np.sqrt(ref_weights.combined)

    def _distance(i: int) -> float:
        off = np.asarray(offsets[i], dtype=np.float64)
        if off.ndim != 2 or off.shape[1] != n_dims:
            raise ShapeMismatch(
                f"point {i}: offsets must have {n_dims} columns, got shape {off.shape}"
            )

        # (nx, ny) squared offset-to-offset distances
        delta = off[:, None, :] - ref_off[None, :, :]
        ix, iy = np.nonzero(np.einsum("xyd,xyd->xy", delta, delta) < tol_dist)
        if ix.size == 0:
            return 0.0

        # Feature differences only for aligned pairs: (n_features, n_aligned)
        diff = x_arr[:, neighbors[i][ix]].astype(np.float64, copy=False) - ref_arr[:, iy]
        feature_d2 = np.einsum("jp,jp->p", diff, diff)
        a = np.sqrt(weights[i].combined[ix]) * ref_w[iy]

        return float(np.sqrt(np.dot(a, feature_d2)))

    return np.asarray(map_points(_distance, neighbors.n_points, n_jobs), dtype=np.float64)
