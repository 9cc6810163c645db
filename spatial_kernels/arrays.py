"""Input normalization shared by the kernel entry points."""

from __future__ import annotations

import numpy as np

from .errors import ShapeMismatch


def as_numeric_matrix(value: np.ndarray, name: str) -> np.ndarray:
    """Return `value` as a 2D integer or floating array without copying when possible."""
    arr = np.asarray(value)

    if arr.ndim != 2:
        raise ShapeMismatch(f"{name} must be a 2D array, got shape {arr.shape}")

    if arr.dtype.kind not in "iuf":
        raise TypeError(f"{name} must have an integer or floating dtype, got {arr.dtype}")

    return arr


def as_float_vector(value: np.ndarray, name: str) -> np.ndarray:
    """Return `value` as a 1D float64 array."""
    arr = np.asarray(value, dtype=np.float64)

    if arr.ndim != 1:
        raise ShapeMismatch(f"{name} must be a 1D array, got shape {arr.shape}")

    return arr


def check_weights_aligned(weights, neighbors, offsets=None) -> None:
    """Require one weight pair (and offset matrix) per point, sized to its neighbor list."""
    lengths = neighbors.lengths

    if len(weights) != neighbors.n_points:
        raise ShapeMismatch(
            f"got {len(weights)} weight pairs for {neighbors.n_points} neighbor lists"
        )

    if offsets is not None and len(offsets) != neighbors.n_points:
        raise ShapeMismatch(
            f"got {len(offsets)} offset matrices for {neighbors.n_points} neighbor lists"
        )

    for i, expected in enumerate(lengths):
        if len(weights[i]) != expected:
            raise ShapeMismatch(
                f"point {i}: {len(weights[i])} weights for {int(expected)} neighbors"
            )
        if offsets is not None and np.shape(offsets[i])[0] != expected:
            raise ShapeMismatch(
                f"point {i}: {np.shape(offsets[i])[0]} offset rows for {int(expected)} neighbors"
            )
