"""Fan-out of independent per-point work across worker threads."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
import logging
import os
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def resolve_n_jobs(n_jobs: int | None) -> int:
    """Return a concrete worker count; None or -1 means all CPUs."""
    if n_jobs is None or n_jobs == -1:
        return max(1, os.cpu_count() or 1)

    if n_jobs <= 0:
        raise ValueError("n_jobs must be > 0, -1 or None")

    return int(n_jobs)


def map_points(func: Callable[[int], T], n_points: int, n_jobs: int | None = 1) -> list[T]:
    """Evaluate `func(i)` for every point index and return results in point order.

    Every call must only read shared inputs; results go to disjoint slots,
    so no locking is needed. Exceptions from any worker propagate to the caller.
    """
    workers = min(resolve_n_jobs(n_jobs), max(1, n_points))

    if workers == 1:
        return [func(i) for i in range(n_points)]

    logger.debug("dispatching %d points to %d threads", n_points, workers)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(func, range(n_points)))
