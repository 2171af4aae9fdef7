"""Terminal dashboard for nettest; the Textual app lives in :mod:`nettest.tui.app`."""

from .render import (
    format_header,
    format_histogram,
    format_stats,
    format_window,
)

__all__ = [
    "format_header",
    "format_histogram",
    "format_stats",
    "format_window",
]
