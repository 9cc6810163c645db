"""Minimal demo for spatial kernel smoothing on a tiny two-channel image.

Run:
    python examples/minimal_demo.py
"""

from __future__ import annotations

from pathlib import Path
import sys

import numpy as np

# Ensure package import works when running this script directly.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from spatial_kernels import (
    KernelConfig,
    find_neighbors,
    neighborhood_offsets,
    neighborhood_weights,
    spatial_distance,
    spatial_filter,
    spatial_scores,
)


def make_demo_data() -> tuple[np.ndarray, np.ndarray]:
    """Create a 5x5 pixel grid whose left half is dim and right half is bright."""
    rng = np.random.default_rng(0)
    coord = np.array([[r, c] for r in range(5) for c in range(5)], dtype=np.int32)

    # Two channels; the step edge sits between columns 1 and 2.
    bright = coord[:, 1] >= 2
    x = np.where(bright, 10.0, 1.0)[None, :] * np.array([[1.0], [0.5]])
    x = x + rng.normal(scale=0.3, size=x.shape)
    return coord, x


def main() -> None:
    """Smooth the grid with and without bilateral weights and score two centers."""
    coord, x = make_demo_data()
    config = KernelConfig(radius=1.5, metric="chebyshev", sigma=1.0, bilateral=True)

    neighbors = find_neighbors(coord, config.radius, metric=config.metric)
    print("Neighbors of pixel 12:", neighbors[12].tolist())

    plain = neighborhood_weights(coord, neighbors, config.sigma)
    bilateral = neighborhood_weights(coord, neighbors, config.sigma, x=x, bilateral=True)

    smoothed_plain = spatial_filter(x, plain, neighbors)
    smoothed_bilateral = spatial_filter(x, bilateral, neighbors)
    print("Row 2, channel 1 raw:       ", np.round(x[0, 10:15], 2).tolist())
    print("Row 2, channel 1 gaussian:  ", np.round(smoothed_plain[0, 10:15], 2).tolist())
    print("Row 2, channel 1 bilateral: ", np.round(smoothed_bilateral[0, 10:15], 2).tolist())

    centers = np.array([[1.0, 10.0], [0.5, 5.0]])
    scores = spatial_scores(x, centers, bilateral, neighbors, sd=x.std(axis=1, ddof=1))
    print("Closest center per pixel:", scores.argmin(axis=1).reshape(5, 5).tolist())

    # Compare every neighborhood with the neighborhood around the center pixel.
    offsets = neighborhood_offsets(coord, neighbors)
    ref = 12
    dist = spatial_distance(
        x,
        x[:, neighbors[ref]],
        offsets,
        offsets[ref],
        bilateral,
        bilateral[ref],
        neighbors,
        tol_dist=config.tol_dist,
    )
    print("Distance to pixel 12 neighborhood:", np.round(dist.reshape(5, 5), 2).tolist())


if __name__ == "__main__":
    main()
