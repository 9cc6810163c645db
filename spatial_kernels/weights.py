"""Gaussian spatial weights with optional bilateral feature-similarity weights."""

from __future__ import annotations

import logging

import numpy as np

from .arrays import as_numeric_matrix
from .errors import DegenerateBandwidth, DegenerateNeighborhood, ShapeMismatch
from .models import NeighborLists, WeightPair
from .offsets import neighborhood_offsets
from .parallel import map_points

logger = logging.getLogger(__name__)


def find_center_row(offsets: np.ndarray) -> int | None:
    """Return the first row whose offset is zero in every dimension, or None."""
    is_center = np.all(offsets == 0, axis=1)
    hits = np.flatnonzero(is_center)
    if hits.size == 0:
        return None
    return int(hits[0])


def spatial_weights(
    offsets: np.ndarray,
    sigma: float,
    x: np.ndarray | None = None,
    bilateral: bool = False,
) -> WeightPair:
    """Compute (alpha, beta) kernel weights for one neighbor set.

    alpha is the Gaussian kernel ``exp(-|offset|^2 / (2 sigma^2))``.

    The neighborhood center is the first row of `offsets` that is zero in
    every dimension. When no row is zero the first row stands in for it.

    With `bilateral=True`, `x` holds the neighbors' features with shape
    (n_features, n_neighbors), columns aligned with the offset rows. beta is
    ``exp(-d2 / (2 lambda))`` where d2 is each neighbor's squared feature
    distance to the center and ``lambda = ((sqrt(max d2) - sqrt(min d2)) / 2)^2``.
    Without bilateral weighting beta is all ones.
    """
    off = as_numeric_matrix(offsets, "offsets")
    n_neighbors = off.shape[0]

    if not sigma > 0:
        raise ValueError("sigma must be > 0")

    if n_neighbors == 0:
        raise DegenerateNeighborhood("cannot weight an empty neighbor set")

    off = off.astype(np.float64, copy=False)
    d2 = np.einsum("ij,ij->i", off, off)
    alpha = np.exp(-d2 / (2.0 * sigma * sigma))

    if not bilateral:
        return WeightPair(alpha=alpha, beta=np.ones(n_neighbors, dtype=np.float64))

    if x is None:
        raise ShapeMismatch("bilateral weighting requires the neighbor feature matrix x")

    features = as_numeric_matrix(x, "x")
    if features.shape[1] != n_neighbors:
        raise ShapeMismatch(
            f"x has {features.shape[1]} columns but offsets have {n_neighbors} rows"
        )

    center = find_center_row(off)
    if center is None:
        logger.debug("no zero offset among %d neighbors; using row 0 as center", n_neighbors)
        center = 0

    diff = features.astype(np.float64, copy=False) - features[:, center : center + 1]
    feature_d2 = np.einsum("ji,ji->i", diff, diff)

    half_range = (np.sqrt(feature_d2.max()) - np.sqrt(feature_d2.min())) / 2.0
    lam = half_range * half_range
    if lam == 0:
        raise DegenerateBandwidth(
            "bilateral bandwidth is zero: all neighbors are feature-identical to the center"
        )

    beta = np.exp(-feature_d2 / (2.0 * lam))
    return WeightPair(alpha=alpha, beta=beta)


def neighborhood_weights(
    coord: np.ndarray,
    neighbors: NeighborLists,
    sigma: float,
    x: np.ndarray | None = None,
    bilateral: bool = False,
    n_jobs: int | None = 1,
) -> list[WeightPair]:
    """Compute weights for every point's neighbor set.

    `x` is the full feature matrix (n_features, n_points); each point's
    bilateral weights use the columns of its own neighbors.
    """
    features = None
    if bilateral:
        if x is None:
            raise ShapeMismatch("bilateral weighting requires the feature matrix x")
        features = as_numeric_matrix(x, "x")
        if features.shape[1] != neighbors.n_points:
            raise ShapeMismatch(
                f"x has {features.shape[1]} points but neighbor lists cover {neighbors.n_points}"
            )

    offsets = neighborhood_offsets(coord, neighbors, n_jobs=n_jobs)

    def _weights(i: int) -> WeightPair:
        nb_x = None if features is None else features[:, neighbors[i]]
        return spatial_weights(offsets[i], sigma, x=nb_x, bilateral=bilateral)

    return map_points(_weights, neighbors.n_points, n_jobs)
