"""Tests for kernel configuration and metric resolution."""

from __future__ import annotations

import unittest

import numpy as np

from spatial_kernels import KernelConfig, Metric


class KernelConfigTest(unittest.TestCase):
    """Validate construction-time checks and serialization."""

    def test_metric_is_resolved_from_code_or_name(self) -> None:
        self.assertIs(KernelConfig(metric=3).metric, Metric.MINKOWSKI)
        self.assertIs(KernelConfig(metric="Chebyshev").metric, Metric.CHEBYSHEV)
        self.assertIs(KernelConfig().metric, Metric.RADIAL)

    def test_invalid_values_fail(self) -> None:
        with self.assertRaises(ValueError):
            KernelConfig(radius=-0.1)

        with self.assertRaises(ValueError):
            KernelConfig(sigma=0.0)

        with self.assertRaises(ValueError):
            KernelConfig(sigma=float("nan"))

        with self.assertRaises(ValueError):
            KernelConfig(radius=float("nan"))

        with self.assertRaises(ValueError):
            KernelConfig(tol_dist=0.0)

        with self.assertRaises(ValueError):
            KernelConfig(n_jobs=0)

        with self.assertRaises(ValueError):
            KernelConfig(metric=7)

    def test_to_dict_uses_plain_types(self) -> None:
        data = KernelConfig(radius=2, metric=2, n_jobs=None).to_dict()
        self.assertEqual(data["metric"], "manhattan")
        self.assertEqual(data["radius"], 2.0)
        self.assertIsNone(data["n_jobs"])


class MetricTest(unittest.TestCase):
    """Validate host integer codes."""

    def test_codes_round_trip(self) -> None:
        for code in (1, 2, 3, 4):
            self.assertEqual(Metric.from_value(code).code, code)
        self.assertIs(Metric.from_value(np.int32(1)), Metric.RADIAL)

    def test_booleans_are_not_codes(self) -> None:
        with self.assertRaises(ValueError):
            Metric.from_value(True)


if __name__ == "__main__":
    unittest.main()
