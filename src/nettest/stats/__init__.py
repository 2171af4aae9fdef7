"""Latency aggregation: windows, histogram and the statistics engine."""

from .engine import StatsEngine, StatsSnapshot
from .window import (
    DEFAULT_THRESHOLDS_MS,
    Histogram,
    HistogramSnapshot,
    Window,
    WindowStats,
    validate_thresholds,
)

__all__ = [
    "DEFAULT_THRESHOLDS_MS",
    "Histogram",
    "HistogramSnapshot",
    "StatsEngine",
    "StatsSnapshot",
    "Window",
    "WindowStats",
    "validate_thresholds",
]
