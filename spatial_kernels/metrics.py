"""Distance metrics understood by the neighbor finder."""

from __future__ import annotations

from enum import Enum
import numbers


class Metric(str, Enum):
    """Metric family used to decide whether two points are neighbors."""

    RADIAL = "radial"
    MANHATTAN = "manhattan"
    MINKOWSKI = "minkowski"
    CHEBYSHEV = "chebyshev"

    @property
    def code(self) -> int:
        """Integer code used by host runtimes (1=radial ... 4=chebyshev)."""
        return _CODES[self]

    @staticmethod
    def from_value(value: "Metric | str | int") -> "Metric":
        """Resolve a metric from an enum member, a name or an integer code."""
        if isinstance(value, Metric):
            return value

        if isinstance(value, str):
            try:
                return Metric(value.strip().lower())
            except ValueError:
                raise ValueError(f"unknown metric name: {value!r}") from None

        if isinstance(value, numbers.Integral) and not isinstance(value, bool):
            for metric, code in _CODES.items():
                if code == value:
                    return metric
            raise ValueError(f"unknown metric code: {value!r} (expected 1-4)")

        raise ValueError(f"metric must be a Metric, name or integer code, got {value!r}")


_CODES = {
    Metric.RADIAL: 1,
    Metric.MANHATTAN: 2,
    Metric.MINKOWSKI: 3,
    Metric.CHEBYSHEV: 4,
}
