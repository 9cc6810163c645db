"""Exception types raised by the spatial kernel routines."""

from __future__ import annotations


class SpatialKernelError(ValueError):
    """Base class for failures detected by the kernel routines."""


class IndexOutOfRange(SpatialKernelError, IndexError):
    """Raised when a center or neighbor index does not address a valid point."""


class DegenerateNeighborhood(SpatialKernelError):
    """Raised when a neighbor set is empty or its weights sum to zero."""


class DegenerateBandwidth(SpatialKernelError):
    """Raised when the adaptive bilateral bandwidth collapses to zero."""


class ShapeMismatch(SpatialKernelError):
    """Raised when array shapes disagree across the inputs of one operation."""
