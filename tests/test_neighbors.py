"""Tests for brute-force neighbor search and neighbor-list containers."""

from __future__ import annotations

import unittest

import numpy as np

from spatial_kernels import (
    IndexOutOfRange,
    Metric,
    NeighborLists,
    ShapeMismatch,
    find_neighbors,
)


class FindNeighborsTest(unittest.TestCase):
    """Validate neighbor predicates for every metric and group rule."""

    def setUp(self) -> None:
        rng = np.random.default_rng(7)
        self.coord = rng.uniform(0.0, 10.0, size=(40, 2))
        self.groups = rng.integers(0, 3, size=40)

    def test_three_point_line_radial(self) -> None:
        coord = np.array([[0.0, 0.0], [1.0, 0.0], [5.0, 0.0]])
        neighbors = find_neighbors(coord, radius=2.0, metric="radial")

        self.assertEqual(neighbors.as_lists(), [[0, 1], [0, 1], [2]])
        self.assertEqual(neighbors.as_lists(one_based=True), [[1, 2], [1, 2], [3]])

    def test_every_point_is_its_own_neighbor(self) -> None:
        for metric in Metric:
            neighbors = find_neighbors(self.coord, radius=0.0, groups=self.groups, metric=metric)
            for i, nb in enumerate(neighbors):
                self.assertIn(i, nb.tolist(), msg=f"metric={metric.value}")

    def test_neighbors_share_group(self) -> None:
        neighbors = find_neighbors(self.coord, radius=4.0, groups=self.groups)
        for i, nb in enumerate(neighbors):
            self.assertTrue(np.all(self.groups[nb] == self.groups[i]))

    def test_lists_are_ascending(self) -> None:
        neighbors = find_neighbors(self.coord, radius=3.0, groups=self.groups, metric="manhattan")
        for nb in neighbors:
            self.assertTrue(np.all(np.diff(nb) > 0))

    def test_larger_radius_gives_superset(self) -> None:
        for metric in (Metric.RADIAL, Metric.MANHATTAN, Metric.CHEBYSHEV, Metric.MINKOWSKI):
            small = find_neighbors(self.coord, radius=1.5, groups=self.groups, metric=metric)
            large = find_neighbors(self.coord, radius=3.0, groups=self.groups, metric=metric)
            for nb_small, nb_large in zip(small, large):
                self.assertTrue(set(nb_small.tolist()).issubset(set(nb_large.tolist())))

    def test_metric_specific_thresholds(self) -> None:
        coord = np.array([[0.0, 0.0], [1.0, 1.0]])

        # Diagonal step: radial sqrt(2), manhattan 2, chebyshev 1.
        self.assertEqual(find_neighbors(coord, 1.5, metric="radial").as_lists(), [[0, 1], [0, 1]])
        self.assertEqual(find_neighbors(coord, 1.5, metric="manhattan").as_lists(), [[0], [1]])
        self.assertEqual(find_neighbors(coord, 1.0, metric="chebyshev").as_lists(), [[0, 1], [0, 1]])
        self.assertEqual(find_neighbors(coord, 0.9, metric="chebyshev").as_lists(), [[0], [1]])

    def test_integer_metric_codes(self) -> None:
        by_name = find_neighbors(self.coord, 2.0, groups=self.groups, metric="chebyshev")
        by_code = find_neighbors(self.coord, 2.0, groups=self.groups, metric=4)
        self.assertEqual(by_name.as_lists(), by_code.as_lists())

    def test_minkowski_fallthrough_flag(self) -> None:
        coord = np.array([[0.0, 0.0], [0.5, 0.0]])

        # Order-2 Minkowski distance is 0.5; the max-replace step inflates it to sqrt(0.5).
        clean = find_neighbors(coord, 0.6, metric="minkowski")
        literal = find_neighbors(coord, 0.6, metric="minkowski", minkowski_fallthrough=True)

        self.assertEqual(clean.as_lists(), [[0, 1], [0, 1]])
        self.assertEqual(literal.as_lists(), [[0], [1]])

    def test_integer_coordinates_match_float(self) -> None:
        grid = np.array([[r, c] for r in range(5) for c in range(4)], dtype=np.int32)
        as_int = find_neighbors(grid, 1.0)
        as_float = find_neighbors(grid.astype(np.float64), 1.0)

        self.assertEqual(as_int.as_lists(), as_float.as_lists())
        # Interior grid point has 4 orthogonal neighbors plus itself.
        self.assertEqual(len(as_int[5]), 5)

    def test_string_group_labels(self) -> None:
        coord = np.array([[0.0, 0.0], [1.0, 0.0], [2.0, 0.0]])
        groups = np.array(["a", "b", "a"], dtype=object)
        neighbors = find_neighbors(coord, 5.0, groups=groups)
        self.assertEqual(neighbors.as_lists(), [[0, 2], [1], [0, 2]])

    def test_threaded_scan_matches_serial(self) -> None:
        serial = find_neighbors(self.coord, 2.5, groups=self.groups, n_jobs=1)
        threaded = find_neighbors(self.coord, 2.5, groups=self.groups, n_jobs=4)
        self.assertTrue(np.array_equal(serial.indices, threaded.indices))
        self.assertTrue(np.array_equal(serial.indptr, threaded.indptr))

    def test_invalid_inputs_fail(self) -> None:
        with self.assertRaises(ValueError):
            find_neighbors(self.coord, radius=-1.0)

        with self.assertRaises(ValueError):
            find_neighbors(self.coord, radius=float("nan"))

        with self.assertRaises(ShapeMismatch):
            find_neighbors(self.coord, radius=1.0, groups=self.groups[:5])

        with self.assertRaises(ShapeMismatch):
            find_neighbors(self.coord[:, 0], radius=1.0)

        with self.assertRaises(ValueError):
            find_neighbors(self.coord, radius=1.0, metric="cosine")


class NeighborListsTest(unittest.TestCase):
    """Validate the flattened neighbor-list container."""

    def test_from_lists_round_trip(self) -> None:
        neighbors = NeighborLists.from_lists([[0, 1], [1], [0, 2]], n_points=3)

        self.assertEqual(neighbors.n_points, 3)
        self.assertEqual(neighbors.lengths.tolist(), [2, 1, 2])
        self.assertEqual(neighbors[2].tolist(), [0, 2])
        self.assertEqual(neighbors[-1].tolist(), [0, 2])

    def test_out_of_range_indices_fail(self) -> None:
        with self.assertRaises(IndexOutOfRange):
            NeighborLists.from_lists([[0, 3]], n_points=2)

        neighbors = NeighborLists.from_lists([[0]])
        with self.assertRaises(IndexError):
            neighbors[1]

    def test_arrays_are_read_only(self) -> None:
        neighbors = NeighborLists.from_lists([[0, 1], [0, 1]])
        with self.assertRaises(ValueError):
            neighbors.indices[0] = 1


if __name__ == "__main__":
    unittest.main()
