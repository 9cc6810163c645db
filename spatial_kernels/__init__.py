"""Public API for spatial kernel smoothing over annotated point clouds."""

from .config import KernelConfig
from .distance import spatial_distance
from .errors import (
    DegenerateBandwidth,
    DegenerateNeighborhood,
    IndexOutOfRange,
    ShapeMismatch,
    SpatialKernelError,
)
from .filtering import spatial_filter
from .metrics import Metric
from .models import NeighborLists, WeightPair
from .neighbors import find_neighbors
from .offsets import neighborhood_offsets, spatial_offsets
from .pipeline import ConfigError, SmoothingRunConfig, load_smoothing_config, run_smoothing, run_smoothing_from_config
from .scores import spatial_scores
from .weights import neighborhood_weights, spatial_weights

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "DegenerateBandwidth",
    "DegenerateNeighborhood",
    "IndexOutOfRange",
    "KernelConfig",
    "Metric",
    "NeighborLists",
    "ShapeMismatch",
    "SmoothingRunConfig",
    "SpatialKernelError",
    "WeightPair",
    "find_neighbors",
    "load_smoothing_config",
    "neighborhood_offsets",
    "neighborhood_weights",
    "run_smoothing",
    "run_smoothing_from_config",
    "spatial_distance",
    "spatial_filter",
    "spatial_offsets",
    "spatial_scores",
    "spatial_weights",
]
