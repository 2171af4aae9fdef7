"""Statistics engine fed by the consumer loop."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .window import DEFAULT_THRESHOLDS_MS, Histogram, HistogramSnapshot, Window, WindowStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StatsSnapshot:
    """Read-only view handed to renderers."""

    last_window: WindowStats
    totals: WindowStats
    current: WindowStats
    histogram: HistogramSnapshot
    rollovers: int
    window_span: float


class StatsEngine:
    """Maintains the current, last-completed and lifetime windows plus a histogram.

    Not thread-safe: a single consumer loop owns the engine and is the only caller
    of :meth:`update`. Rollover is checked after each sample, so a window only
    rolls over when traffic arrives after its span has elapsed; time passing
    without samples changes nothing.
    """

    def __init__(
        self,
        window_span: float,
        thresholds: Sequence[float] = DEFAULT_THRESHOLDS_MS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window_span <= 0:
            raise ValueError("window span must be positive")
        self._window_span = float(window_span)
        self._clock = clock
        self._window_start = clock()
        self._window = Window()
        self._last_window = Window()
        self._totals = Window()
        self._histogram = Histogram(thresholds)
        self._rollovers = 0

    @property
    def window_span(self) -> float:
        return self._window_span

    def update(self, latency_ms: float) -> None:
        self._window.update(latency_ms)
        self._totals.update(latency_ms)
        self._histogram.update(latency_ms)

        now = self._clock()
        if now - self._window_start > self._window_span:
            self._rollover(now)

    def _rollover(self, now: float) -> None:
        self._last_window = self._window.copy()
        self._window.reset()
        self._window_start = now
        self._rollovers += 1
        logger.debug(
            "Window rolled over (%d samples, avg %dms)",
            self._last_window.count,
            self._last_window.average(),
        )

    def snapshot(self) -> StatsSnapshot:
        return StatsSnapshot(
            last_window=self._last_window.stats(),
            totals=self._totals.stats(),
            current=self._window.stats(),
            histogram=self._histogram.snapshot(),
            rollovers=self._rollovers,
            window_span=self._window_span,
        )


__all__ = ["StatsEngine", "StatsSnapshot"]
