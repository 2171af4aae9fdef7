"""Events and outcomes emitted by a probe run."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum

from nettest.contracts.error import (
    ProbeError,
    ProbeExitError,
    ProbeStartError,
    ProbeStreamError,
)


class OutcomeKind(Enum):
    CANCELLED = "cancelled"
    START_FAILED = "start_failed"
    STREAM_FAILED = "stream_failed"
    EXIT_FAILED = "exit_failed"
    EXITED = "exited"


@dataclass(frozen=True, slots=True)
class ProbeOutcome:
    """Terminal result of one probe run. Only cancellation counts as success."""

    kind: OutcomeKind
    returncode: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.CANCELLED

    def to_exception(self) -> ProbeError | None:
        if self.kind is OutcomeKind.CANCELLED:
            return None
        detail = self.error or self.kind.value
        if self.kind is OutcomeKind.START_FAILED:
            return ProbeStartError(
                f"Failed to start probe: {detail}",
                hint="Check that the ping executable is installed and on PATH.",
            )
        if self.kind is OutcomeKind.STREAM_FAILED:
            return ProbeStreamError(f"Probe output stream failed: {detail}")
        return ProbeExitError(
            f"Probe exited with code {self.returncode}: {detail}",
            returncode=self.returncode,
        )

    def raise_for_failure(self) -> None:
        exc = self.to_exception()
        if exc is not None:
            raise exc


@dataclass(frozen=True, slots=True)
class SampleEvent:
    latency_ms: float
    received_at: float


@dataclass(frozen=True, slots=True)
class OutcomeEvent:
    outcome: ProbeOutcome


@dataclass(frozen=True, slots=True)
class CancelRequested:
    pass


ProbeEvent = SampleEvent | OutcomeEvent | CancelRequested


class OutcomeSlot:
    """Write-once holder for a :class:`ProbeOutcome`.

    The first ``set`` wins; later writers are told so and their value is discarded.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ready = threading.Event()
        self._value: ProbeOutcome | None = None

    def set(self, outcome: ProbeOutcome) -> bool:
        with self._lock:
            if self._value is not None:
                return False
            self._value = outcome
        self._ready.set()
        return True

    def is_set(self) -> bool:
        return self._ready.is_set()

    def get(self) -> ProbeOutcome | None:
        return self._value

    def wait(self, timeout: float | None = None) -> ProbeOutcome | None:
        self._ready.wait(timeout)
        return self._value


__all__ = [
    "CancelRequested",
    "OutcomeEvent",
    "OutcomeKind",
    "OutcomeSlot",
    "ProbeEvent",
    "ProbeOutcome",
    "SampleEvent",
]
