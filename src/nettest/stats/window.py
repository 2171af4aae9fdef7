"""Running latency accumulators: min/max/avg windows and a bucketed histogram."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from itertools import pairwise

DEFAULT_THRESHOLDS_MS: tuple[int, ...] = (1, 2, 5, 10, 20, 50, 100, 200, 500, 1000)


def validate_thresholds(thresholds: Sequence[float]) -> tuple[float, ...]:
    bounds = tuple(thresholds)
    if not bounds:
        raise ValueError("histogram needs at least one threshold")
    if any(bound <= 0 for bound in bounds):
        raise ValueError("histogram thresholds must be positive")
    if any(lower >= upper for lower, upper in pairwise(bounds)):
        raise ValueError("histogram thresholds must be strictly ascending")
    return bounds


@dataclass(frozen=True, slots=True)
class WindowStats:
    min_ms: int
    max_ms: int
    avg_ms: int
    count: int


class Window:
    """Min, max, sum and count of the latencies seen since the last reset."""

    __slots__ = ("minimum", "maximum", "total", "count")

    def __init__(self) -> None:
        self.minimum = 0.0
        self.maximum = 0.0
        self.total = 0.0
        self.count = 0

    def update(self, latency_ms: float) -> None:
        if self.count == 0:
            self.minimum = self.maximum = self.total = latency_ms
            self.count = 1
            return
        self.minimum = min(self.minimum, latency_ms)
        self.maximum = max(self.maximum, latency_ms)
        self.total += latency_ms
        self.count += 1

    def reset(self) -> None:
        self.minimum = 0.0
        self.maximum = 0.0
        self.total = 0.0
        self.count = 0

    def average(self) -> int:
        if self.count == 0:
            return 0
        return int(self.total // self.count)

    def copy(self) -> Window:
        clone = Window()
        clone.minimum = self.minimum
        clone.maximum = self.maximum
        clone.total = self.total
        clone.count = self.count
        return clone

    def stats(self) -> WindowStats:
        return WindowStats(
            min_ms=int(self.minimum),
            max_ms=int(self.maximum),
            avg_ms=self.average(),
            count=self.count,
        )


@dataclass(frozen=True, slots=True)
class HistogramSnapshot:
    thresholds: tuple[float, ...]
    counts: tuple[int, ...]
    total: int

    @property
    def overflow(self) -> int:
        """Samples larger than every threshold (counted in ``total`` only)."""
        return self.total - sum(self.counts)


class Histogram:
    """Counts each sample into the first bucket whose upper bound it does not exceed."""

    __slots__ = ("thresholds", "buckets", "total")

    def __init__(self, thresholds: Sequence[float] = DEFAULT_THRESHOLDS_MS) -> None:
        self.thresholds = validate_thresholds(thresholds)
        self.buckets = [0] * len(self.thresholds)
        self.total = 0

    def update(self, latency_ms: float) -> None:
        for index, threshold in enumerate(self.thresholds):
            if latency_ms <= threshold:
                self.buckets[index] += 1
                break
        self.total += 1

    def snapshot(self) -> HistogramSnapshot:
        return HistogramSnapshot(self.thresholds, tuple(self.buckets), self.total)


__all__ = [
    "DEFAULT_THRESHOLDS_MS",
    "Histogram",
    "HistogramSnapshot",
    "Window",
    "WindowStats",
    "validate_thresholds",
]
