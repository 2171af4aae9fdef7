"""Probe subprocess supervision and output parsing."""

from .events import (
    CancelRequested,
    OutcomeEvent,
    OutcomeKind,
    OutcomeSlot,
    ProbeEvent,
    ProbeOutcome,
    SampleEvent,
)
from .parser import (
    LINE_PATTERNS,
    LineKind,
    ParsedLine,
    PingLineParser,
    classify_line,
    resolve_line_pattern,
)
from .producer import ProbeRun, SampleProducer, build_ping_command

__all__ = [
    "CancelRequested",
    "LINE_PATTERNS",
    "LineKind",
    "OutcomeEvent",
    "OutcomeKind",
    "OutcomeSlot",
    "ParsedLine",
    "PingLineParser",
    "ProbeEvent",
    "ProbeOutcome",
    "ProbeRun",
    "SampleEvent",
    "SampleProducer",
    "build_ping_command",
    "classify_line",
    "resolve_line_pattern",
]
