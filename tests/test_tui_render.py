from __future__ import annotations

from nettest.stats import HistogramSnapshot, StatsEngine
from nettest.stats.window import WindowStats
from nettest.tui.render import (
    BAR_WIDTH,
    format_header,
    format_histogram,
    format_stats,
    format_window,
)
from tests.util.fakes import FakeClock


def test_format_header() -> None:
    assert format_header("google.co.uk", 1) == "PING: google.co.uk (interval: 1s)"


def test_format_window() -> None:
    stats = WindowStats(min_ms=3, max_ms=40, avg_ms=12, count=9)
    assert format_window(stats) == "Min: 3ms, Max: 40ms, Avg: 12ms"


def test_format_stats_uses_last_window_and_totals(clock: FakeClock) -> None:
    engine = StatsEngine(5, clock=clock)
    engine.update(4.0)
    clock.advance(6)
    engine.update(8.0)
    engine.update(30.0)
    text = format_stats(engine.snapshot())
    assert text.splitlines() == [
        "Window - Min: 4ms, Max: 8ms, Avg: 6ms",
        "Totals - Min: 4ms, Max: 30ms, Avg: 14ms",
    ]


def test_format_histogram_scales_to_fullest_bucket() -> None:
    snap = HistogramSnapshot(thresholds=(1, 10, 100), counts=(2, 4, 0), total=7)
    lines = format_histogram(snap).splitlines()
    assert lines[0] == "Histogram, Total: 7"
    assert lines[1] == "    1ms : " + "█" * (BAR_WIDTH // 2)
    assert lines[2] == "   10ms : " + "█" * BAR_WIDTH
    assert lines[3] == "  100ms : "


def test_format_histogram_empty_has_no_bars() -> None:
    snap = HistogramSnapshot(thresholds=(1, 2), counts=(0, 0), total=0)
    assert format_histogram(snap).splitlines()[1:] == ["    1ms : ", "    2ms : "]
