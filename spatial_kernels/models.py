"""Typed containers passed between the spatial kernel routines."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import numpy as np

from .errors import IndexOutOfRange, ShapeMismatch


@dataclass(frozen=True)
class NeighborLists:
    """Per-point neighbor index lists stored as one flat array plus offsets.

    List ``i`` is ``indices[indptr[i]:indptr[i + 1]]``. Indices are 0-based and
    ascending within each list. The arrays are frozen after construction.
    """

    indices: np.ndarray
    indptr: np.ndarray

    def __post_init__(self) -> None:
        """Normalize dtypes, validate offsets, and freeze both arrays."""
        indices = np.asarray(self.indices, dtype=np.int64).copy()
        indptr = np.asarray(self.indptr, dtype=np.int64).copy()

        if indices.ndim != 1:
            raise ShapeMismatch("indices must be a 1D array")

        if indptr.ndim != 1 or indptr.size == 0:
            raise ShapeMismatch("indptr must be a non-empty 1D array")

        if indptr[0] != 0 or indptr[-1] != indices.size:
            raise ShapeMismatch("indptr must start at 0 and end at len(indices)")

        if np.any(np.diff(indptr) < 0):
            raise ShapeMismatch("indptr must be non-decreasing")

        if np.any(indices < 0):
            raise IndexOutOfRange("neighbor indices must be >= 0")

        indices.setflags(write=False)
        indptr.setflags(write=False)
        object.__setattr__(self, "indices", indices)
        object.__setattr__(self, "indptr", indptr)

    @classmethod
    def from_lists(cls, lists: Sequence[Sequence[int]], n_points: int | None = None) -> "NeighborLists":
        """Build from an explicit sequence of 0-based index lists."""
        arrays = [np.asarray(nb, dtype=np.int64).reshape(-1) for nb in lists]
        lengths = np.asarray([a.size for a in arrays], dtype=np.int64)
        indptr = np.zeros(len(arrays) + 1, dtype=np.int64)
        np.cumsum(lengths, out=indptr[1:])

        if arrays:
            indices = np.concatenate(arrays)
        else:
            indices = np.zeros(0, dtype=np.int64)

        neighbors = cls(indices=indices, indptr=indptr)
        if n_points is not None:
            neighbors.check_bounds(n_points)
        return neighbors

    @property
    def n_points(self) -> int:
        """Return number of points (one list per point)."""
        return int(self.indptr.size - 1)

    @property
    def lengths(self) -> np.ndarray:
        """Return neighbor count of every list."""
        return np.diff(self.indptr)

    def __len__(self) -> int:
        return self.n_points

    def __getitem__(self, i: int) -> np.ndarray:
        if not -self.n_points <= i < self.n_points:
            raise IndexOutOfRange(f"point index {i} out of range for {self.n_points} points")
        if i < 0:
            i += self.n_points
        return self.indices[self.indptr[i] : self.indptr[i + 1]]

    def __iter__(self) -> Iterator[np.ndarray]:
        for i in range(self.n_points):
            yield self[i]

    def check_bounds(self, n_points: int) -> None:
        """Raise if any index does not address one of `n_points` points."""
        if self.indices.size and int(self.indices.max()) >= n_points:
            raise IndexOutOfRange(
                f"neighbor index {int(self.indices.max())} out of range for {n_points} points"
            )

    def as_lists(self, one_based: bool = False) -> list[list[int]]:
        """Return plain Python lists; `one_based=True` gives host-runtime indices."""
        shift = 1 if one_based else 0
        return [[int(ii) + shift for ii in nb] for nb in self]


@dataclass(frozen=True)
class WeightPair:
    """Spatial (alpha) and feature-similarity (beta) weights for one neighbor set."""

    alpha: np.ndarray
    beta: np.ndarray

    def __post_init__(self) -> None:
        """Normalize both vectors to float64 and require equal lengths."""
        alpha = np.asarray(self.alpha, dtype=np.float64).reshape(-1)
        beta = np.asarray(self.beta, dtype=np.float64).reshape(-1)

        if alpha.shape != beta.shape:
            raise ShapeMismatch(
                f"alpha and beta must have the same length, got {alpha.size} and {beta.size}"
            )

        alpha.setflags(write=False)
        beta.setflags(write=False)
        object.__setattr__(self, "alpha", alpha)
        object.__setattr__(self, "beta", beta)

    def __len__(self) -> int:
        return int(self.alpha.size)

    @property
    def combined(self) -> np.ndarray:
        """Return alpha * beta, the weight used by filtering and scoring."""
        return self.alpha * self.beta
