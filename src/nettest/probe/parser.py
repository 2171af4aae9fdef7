"""Classify probe output lines into latency samples."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)

PING_LINE = re.compile(
    r"^\d+ bytes from \d+\.\d+\.\d+\.\d+: icmp_seq=\d+ ttl=\d+ time=(?P<latency>\d+\.\d+) ms$"
)

# iputils prints the reverse-resolved name with the address in parentheses.
NAMED_PING_LINE = re.compile(
    r"^\d+ bytes from \S+ \(\d+\.\d+\.\d+\.\d+\): icmp_seq=\d+ ttl=\d+ "
    r"time=(?P<latency>\d+\.\d+) ms$"
)

LINE_PATTERNS: dict[str, re.Pattern[str]] = {
    "ipv4": PING_LINE,
    "named": NAMED_PING_LINE,
}

BANNER_PREFIX = "PING"


def resolve_line_pattern(name: str) -> tuple[str, re.Pattern[str]]:
    """Return canonical dialect key + compiled pattern for probe output."""

    key = (name or "ipv4").strip().lower()
    pattern = LINE_PATTERNS.get(key)
    if pattern is None:
        raise ValueError(f"Unknown probe output dialect: {name}")
    return key, pattern


class LineKind(Enum):
    IGNORED = "ignored"
    SAMPLE = "sample"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True, slots=True)
class ParsedLine:
    kind: LineKind
    latency_ms: float | None = None


_IGNORED = ParsedLine(LineKind.IGNORED)
_UNRECOGNIZED = ParsedLine(LineKind.UNRECOGNIZED)


def classify_line(line: str, pattern: re.Pattern[str] = PING_LINE) -> ParsedLine:
    """Classify one line of probe output.

    ``"64 bytes from 1.2.3.4: icmp_seq=1 ttl=64 time=23.4 ms"`` yields a sample of
    23.4 ms. Blank lines and the startup banner are ignorable; anything else is
    unrecognized.
    """

    text = line.strip()
    if not text or text.startswith(BANNER_PREFIX):
        return _IGNORED
    match = pattern.match(text)
    if match is None:
        return _UNRECOGNIZED
    return ParsedLine(LineKind.SAMPLE, float(match.group("latency")))


class LineParser(Protocol):
    def parse(self, line: str) -> float | None: ...


class PingLineParser:
    """Best-effort parser for ping output with diagnostic counters.

    Unrecognized lines are dropped and counted; they never fail the pipeline.
    """

    def __init__(self, dialect: str = "ipv4") -> None:
        self.dialect, self._pattern = resolve_line_pattern(dialect)
        self.parsed = 0
        self.ignored = 0
        self.dropped = 0

    def parse(self, line: str) -> float | None:
        result = classify_line(line, self._pattern)
        if result.kind is LineKind.SAMPLE:
            self.parsed += 1
            return result.latency_ms
        if result.kind is LineKind.IGNORED:
            self.ignored += 1
        else:
            self.dropped += 1
            logger.debug("Dropped unrecognized probe line: %r", line.rstrip())
        return None


__all__ = [
    "BANNER_PREFIX",
    "LINE_PATTERNS",
    "LineKind",
    "LineParser",
    "NAMED_PING_LINE",
    "PING_LINE",
    "ParsedLine",
    "PingLineParser",
    "classify_line",
    "resolve_line_pattern",
]
