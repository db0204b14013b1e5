"""Latency statistics: nearest-rank percentiles and summaries.

Percentiles use the floor index ``sorted[floor(p * n)]`` clamped to the last
element, with no interpolation. p50 of [50, 100, 200, 300] is 200.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Value at fraction ``p`` of an ascending sequence. 0 for an empty one."""
    n = len(sorted_values)
    if n == 0:
        return 0
    return sorted_values[min(math.floor(p * n), n - 1)]


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0


@dataclass(frozen=True)
class LatencySummary:
    count: int
    avg_ms: float
    p50_ms: float
    p95_ms: float
    p99_ms: float


def summarize(durations: Iterable[float]) -> LatencySummary:
    """Mean and p50/p95/p99 over the given durations (ms)."""
    ordered = sorted(durations)
    return LatencySummary(
        count=len(ordered),
        avg_ms=mean(ordered),
        p50_ms=percentile(ordered, 0.50),
        p95_ms=percentile(ordered, 0.95),
        p99_ms=percentile(ordered, 0.99),
    )
