"""Locally smoothed, standardized distance of every point to reference centers."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from .arrays import as_float_vector, as_numeric_matrix, check_weights_aligned
from .errors import DegenerateNeighborhood, ShapeMismatch
from .models import NeighborLists, WeightPair
from .parallel import map_points


def normalized_weights(pair: WeightPair, point: int) -> np.ndarray:
    """Return alpha * beta scaled to sum to one."""
    combined = pair.combined
    total = combined.sum()

    if combined.size == 0:
        raise DegenerateNeighborhood(f"point {point} has an empty neighbor list")

    if not total > 0:
        raise DegenerateNeighborhood(f"point {point}: neighbor weights sum to {total}")

    return combined / total


def spatial_scores(
    x: np.ndarray,
    centers: np.ndarray,
    weights: Sequence[WeightPair],
    neighbors: NeighborLists,
    sd: np.ndarray,
    n_jobs: int | None = 1,
) -> np.ndarray:
    """Score every point against every center.

    ``score[i, k] = sum_l w_l * sum_j ((x[j, nb_l] - centers[j, k]) / sd[j])^2``
    where w are point i's normalized weights. Low scores mean the point's
    neighborhood closely matches the center's feature profile.

    Returns an array of shape (n_points, n_centers).
    """
    x_arr = as_numeric_matrix(x, "x")
    center_arr = as_numeric_matrix(centers, "centers").astype(np.float64, copy=False)
    sdev = as_float_vector(sd, "sd")
    n_features = x_arr.shape[0]

    if center_arr.shape[0] != n_features:
        raise ShapeMismatch(
            f"x has {n_features} features but centers have {center_arr.shape[0]}"
        )

    if sdev.shape[0] != n_features:
        raise ShapeMismatch(f"x has {n_features} features but sd has {sdev.shape[0]}")

    check_weights_aligned(weights, neighbors)
    neighbors.check_bounds(x_arr.shape[1])

    inv_var = 1.0 / (sdev * sdev)

    def _score(i: int) -> np.ndarray:
        w = normalized_weights(weights[i], i)
        nb_x = x_arr[:, neighbors[i]].astype(np.float64, copy=False)
        diff = nb_x[:, :, None] - center_arr[:, None, :]  # (features, neighbors, centers)
        return np.einsum("l,j,jlk->k", w, inv_var, diff * diff, optimize=False)

    rows = map_points(_score, neighbors.n_points, n_jobs)
    if not rows:
        return np.zeros((0, center_arr.shape[1]), dtype=np.float64)
    return np.vstack(rows)
