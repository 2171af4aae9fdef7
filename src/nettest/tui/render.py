"""Plain-text rendering of statistics snapshots."""

from __future__ import annotations

from nettest.stats import HistogramSnapshot, StatsSnapshot, WindowStats

BAR_WIDTH = 50
BAR_CHAR = "█"


def format_header(host: str, interval: int) -> str:
    return f"PING: {host} (interval: {interval}s)"


def format_window(stats: WindowStats) -> str:
    return f"Min: {stats.min_ms}ms, Max: {stats.max_ms}ms, Avg: {stats.avg_ms}ms"


def format_stats(snapshot: StatsSnapshot) -> str:
    return "\n".join(
        [
            f"Window - {format_window(snapshot.last_window)}",
            f"Totals - {format_window(snapshot.totals)}",
        ]
    )


def format_histogram(histogram: HistogramSnapshot, width: int = BAR_WIDTH) -> str:
    """Render one bar per bucket, scaled against the fullest bucket."""

    peak = max(histogram.counts, default=0)
    lines = [f"Histogram, Total: {histogram.total}"]
    for threshold, count in zip(histogram.thresholds, histogram.counts):
        length = int(count / peak * width) if peak else 0
        lines.append(f"{int(threshold):5d}ms : {BAR_CHAR * length}")
    return "\n".join(lines)


__all__ = [
    "BAR_WIDTH",
    "format_header",
    "format_histogram",
    "format_stats",
    "format_window",
]
