"""Tests for offset computation and spatial/bilateral weight generation."""

from __future__ import annotations

import math
import unittest

import numpy as np

from spatial_kernels import (
    DegenerateBandwidth,
    DegenerateNeighborhood,
    IndexOutOfRange,
    NeighborLists,
    ShapeMismatch,
    find_neighbors,
    neighborhood_offsets,
    neighborhood_weights,
    spatial_offsets,
    spatial_weights,
)
from spatial_kernels.weights import find_center_row


class SpatialOffsetsTest(unittest.TestCase):
    """Validate per-dimension offsets relative to a center point."""

    def setUp(self) -> None:
        self.coord = np.array([[0, 0], [1, 0], [1, 2], [4, 4]], dtype=np.int32)

    def test_offsets_subtract_center(self) -> None:
        offsets = spatial_offsets(self.coord, np.array([0, 2]), k=1)
        self.assertTrue(np.array_equal(offsets, np.array([[-1, 0], [0, 2]])))
        self.assertEqual(offsets.dtype, np.int32)

    def test_offsets_are_antisymmetric(self) -> None:
        for i in range(4):
            for k in range(4):
                forward = spatial_offsets(self.coord, np.array([i]), k=k)
                backward = spatial_offsets(self.coord, np.array([k]), k=i)
                self.assertTrue(np.array_equal(forward, -backward))

    def test_reference_variant_covers_all_points(self) -> None:
        offsets = spatial_offsets(self.coord, None, k=3)
        self.assertEqual(offsets.shape, (4, 2))
        self.assertTrue(np.array_equal(offsets[3], [0, 0]))

    def test_unsigned_coordinates_do_not_wrap(self) -> None:
        coord = np.array([[5], [2]], dtype=np.uint8)
        offsets = spatial_offsets(coord, np.array([1]), k=0)
        self.assertEqual(int(offsets[0, 0]), -3)

    def test_out_of_range_indices_fail(self) -> None:
        with self.assertRaises(IndexOutOfRange):
            spatial_offsets(self.coord, np.array([0]), k=4)

        with self.assertRaises(IndexError):
            spatial_offsets(self.coord, np.array([0, 9]), k=0)

    def test_neighborhood_offsets_match_lists(self) -> None:
        neighbors = find_neighbors(self.coord, radius=2.5)
        offsets = neighborhood_offsets(self.coord, neighbors)

        self.assertEqual(len(offsets), 4)
        for i, off in enumerate(offsets):
            self.assertEqual(off.shape, (len(neighbors[i]), 2))
            self.assertTrue(np.array_equal(off, self.coord[neighbors[i]] - self.coord[i]))


class SpatialWeightsTest(unittest.TestCase):
    """Validate Gaussian and bilateral kernel weights."""

    def test_gaussian_weights_without_bilateral(self) -> None:
        offsets = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0]])
        weights = spatial_weights(offsets, sigma=1.0)

        expected_alpha = np.array([1.0, math.exp(-0.5), math.exp(-1.0)])
        self.assertTrue(np.allclose(weights.alpha, expected_alpha, atol=1e-12))
        self.assertTrue(np.array_equal(weights.beta, np.ones(3)))

    def test_alpha_in_unit_interval_with_center_at_one(self) -> None:
        rng = np.random.default_rng(3)
        offsets = rng.integers(-3, 4, size=(12, 2))
        offsets[5] = 0
        weights = spatial_weights(offsets, sigma=1.5)

        self.assertTrue(np.all(weights.alpha > 0))
        self.assertTrue(np.all(weights.alpha <= 1))
        self.assertEqual(weights.alpha[5], 1.0)

    def test_bilateral_uses_adaptive_bandwidth(self) -> None:
        offsets = np.array([[-1, 0], [0, 0], [1, 0]])
        x = np.array([[0.0, 1.0, 3.0]])
        weights = spatial_weights(offsets, sigma=1.0, x=x, bilateral=True)

        # d2 to the center = [1, 0, 4]; lambda = ((2 - 0) / 2)^2 = 1.
        expected_beta = np.exp(-np.array([1.0, 0.0, 4.0]) / 2.0)
        self.assertTrue(np.allclose(weights.beta, expected_beta, atol=1e-12))
        self.assertEqual(weights.beta[1], 1.0)

    def test_center_is_first_zero_row(self) -> None:
        offsets = np.array([[1, 0], [0, 0], [0, 0]])
        self.assertEqual(find_center_row(offsets), 1)
        self.assertIsNone(find_center_row(np.array([[1, 1]])))

    def test_feature_identical_neighborhood_is_degenerate(self) -> None:
        offsets = np.array([[0, 0], [1, 0]])
        x = np.array([[2.0, 2.0], [5.0, 5.0]])

        with self.assertRaises(DegenerateBandwidth):
            spatial_weights(offsets, sigma=1.0, x=x, bilateral=True)

    def test_invalid_inputs_fail(self) -> None:
        with self.assertRaises(DegenerateNeighborhood):
            spatial_weights(np.zeros((0, 2)), sigma=1.0)

        with self.assertRaises(ShapeMismatch):
            spatial_weights(np.zeros((2, 2)), sigma=1.0, bilateral=True)

        with self.assertRaises(ShapeMismatch):
            spatial_weights(np.zeros((2, 2)), sigma=1.0, x=np.zeros((1, 3)), bilateral=True)

        with self.assertRaises(ValueError):
            spatial_weights(np.zeros((1, 2)), sigma=0.0)

        with self.assertRaises(ValueError):
            spatial_weights(np.zeros((1, 2)), sigma=float("nan"))

    def test_neighborhood_weights_align_with_lists(self) -> None:
        coord = np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0], [9.0, 9.0]])
        x = np.array([[0.0, 1.0, 4.0, 2.0]])
        neighbors = find_neighbors(coord, radius=1.0)
        # Point 3 is isolated, so bilateral weighting would be degenerate for it.
        connected = NeighborLists.from_lists(list(neighbors)[:3] + [[2, 3]])

        weights = neighborhood_weights(coord, neighbors, sigma=1.0)
        self.assertEqual([len(w) for w in weights], neighbors.lengths.tolist())
        for i, w in enumerate(weights):
            center = int(np.flatnonzero(neighbors[i] == i)[0])
            self.assertEqual(w.alpha[center], 1.0)

        bilateral = neighborhood_weights(coord, connected, sigma=1.0, x=x, bilateral=True, n_jobs=2)
        # Point 1 neighbors [0, 1, 2]: d2 = [1, 0, 9], lambda = 2.25.
        expected = np.exp(-np.array([1.0, 0.0, 9.0]) / 4.5)
        self.assertTrue(np.allclose(bilateral[1].beta, expected, atol=1e-12))


if __name__ == "__main__":
    unittest.main()
