"""Configuration objects for spatial kernel smoothing."""

from __future__ import annotations

from dataclasses import dataclass

from .metrics import Metric


@dataclass(frozen=True)
class KernelConfig:
    """Runtime parameters shared by neighbor search, weighting and smoothing.

    One config describes one smoothing pass: which points count as neighbors
    and how strongly each neighbor contributes.
    """

    # Neighborhood radius in coordinate units.
    radius: float = 1.0

    # Metric used for the radius test; a Metric, its name, or its 1-4 code.
    metric: Metric | str | int = Metric.RADIAL

    # Gaussian bandwidth of the spatial (alpha) kernel.
    sigma: float = 1.0

    # If True, beta re-weights neighbors by feature similarity to the center.
    bilateral: bool = False

    # Squared-offset tolerance used to align two neighborhoods in spatial_distance.
    tol_dist: float = 1e-9

    # Apply the chebyshev max-replace step after the minkowski sum (legacy neighbor sets).
    minkowski_fallthrough: bool = False

    # Worker threads for per-point loops; None or -1 uses every CPU.
    n_jobs: int | None = 1

    def __post_init__(self) -> None:
        """Validate config values once at construction time."""
        object.__setattr__(self, "metric", Metric.from_value(self.metric))

        if not self.radius >= 0:
            raise ValueError("radius must be >= 0")

        if not self.sigma > 0:
            raise ValueError("sigma must be > 0")

        if not self.tol_dist > 0:
            raise ValueError("tol_dist must be > 0")

        if self.n_jobs is not None and self.n_jobs != -1 and self.n_jobs <= 0:
            raise ValueError("n_jobs must be > 0, -1 or None")

    def to_dict(self) -> dict[str, object]:
        """Return config as plain Python types for YAML/JSON output."""
        return {
            "radius": float(self.radius),
            "metric": self.metric.value,
            "sigma": float(self.sigma),
            "bilateral": bool(self.bilateral),
            "tol_dist": float(self.tol_dist),
            "minkowski_fallthrough": bool(self.minkowski_fallthrough),
            "n_jobs": self.n_jobs,
        }
