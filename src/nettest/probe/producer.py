"""Supervise a ping subprocess and stream its latency samples."""

from __future__ import annotations

import contextlib
import logging
import queue
import threading
import time
from collections import deque
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

from nettest._safe_subprocess import PIPE, TimeoutExpired, format_command, safe_popen

from .events import (
    CancelRequested,
    OutcomeEvent,
    OutcomeKind,
    OutcomeSlot,
    ProbeEvent,
    ProbeOutcome,
    SampleEvent,
)
from .parser import LineParser, PingLineParser

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from subprocess import Popen  # noqa: S404  # nosec B404 - type-only import
else:  # pragma: no cover - runtime type hint support
    Popen = Any  # type: ignore[assignment]

logger = logging.getLogger(__name__)

DEFAULT_PING_EXECUTABLE = "ping"
STDERR_TAIL_LINES = 20


def build_ping_command(executable: str, host: str, interval: int) -> list[str]:
    return [executable, host, "-i", str(interval)]


class ProbeRun:
    """One supervised probe subprocess and the events it produces.

    Samples are queued in the order the probe printed them. Exactly one outcome is
    published; once it is, the event stream is closed and later output is discarded.
    """

    def __init__(
        self,
        command: Sequence[str],
        parser: LineParser,
        cancel: threading.Event,
        *,
        terminate_timeout: float = 2.0,
        poll_interval: float = 0.05,
    ) -> None:
        self.command = list(command)
        self.outcome = OutcomeSlot()
        self._parser = parser
        self._cancel = cancel
        self._terminate_timeout = terminate_timeout
        self._poll_interval = poll_interval
        self._events: queue.Queue[ProbeEvent] = queue.Queue()
        self._emit_lock = threading.Lock()
        self._closed = False
        self._proc: Popen[str] | None = None
        self._stdout_thread: threading.Thread | None = None
        self._stderr_thread: threading.Thread | None = None
        self._supervisor: threading.Thread | None = None
        self._stream_error: BaseException | None = None
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    def is_running(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    def launch(self) -> None:
        try:
            # Undecodable bytes become U+FFFD and the parser drops the line. A new
            # session keeps a terminal Ctrl+C from reaching the probe directly.
            proc = safe_popen(
                self.command,
                stdout=PIPE,
                stderr=PIPE,
                text=True,
                bufsize=1,
                errors="replace",
                start_new_session=True,
            )
        except (OSError, ValueError) as exc:
            self._publish(ProbeOutcome(OutcomeKind.START_FAILED, error=str(exc)))
            return
        self._proc = proc
        logger.info("Started probe pid=%s: %s", proc.pid, format_command(self.command))
        self._stdout_thread = threading.Thread(target=self._pump_stdout, args=(proc,), daemon=True)
        self._stderr_thread = threading.Thread(target=self._drain_stderr, args=(proc,), daemon=True)
        self._supervisor = threading.Thread(target=self._supervise, args=(proc,), daemon=True)
        self._stdout_thread.start()
        self._stderr_thread.start()
        self._supervisor.start()

    def events(self) -> Iterator[ProbeEvent]:
        """Yield samples until an outcome arrives or cancellation is observed.

        Cancellation is checked before every sample so nothing is delivered once the
        stop signal has fired.
        """

        while True:
            if self._cancel.is_set():
                yield CancelRequested()
                return
            try:
                event = self._events.get(timeout=self._poll_interval)
            except queue.Empty:
                continue
            if isinstance(event, SampleEvent) and self._cancel.is_set():
                yield CancelRequested()
                return
            yield event
            if isinstance(event, OutcomeEvent):
                return

    def wait(self, timeout: float | None = None) -> ProbeOutcome | None:
        supervisor = self._supervisor
        if supervisor is not None and supervisor is not threading.current_thread():
            supervisor.join(timeout)
        return self.outcome.wait(0 if timeout is None else timeout)

    def close(self) -> ProbeOutcome | None:
        """Stop the probe (if still running) and wait until it has been reaped."""

        self._cancel.set()
        return self.wait()

    def __enter__(self) -> ProbeRun:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _publish(self, outcome: ProbeOutcome) -> bool:
        if not self.outcome.set(outcome):
            logger.debug("Discarding late outcome %s", outcome.kind.value)
            return False
        with self._emit_lock:
            self._closed = True
            self._events.put(OutcomeEvent(outcome))
        if outcome.ok:
            logger.info("Probe cancelled")
        else:
            logger.warning("Probe finished: %s (%s)", outcome.kind.value, outcome.error)
        return True

    def _emit_sample(self, latency_ms: float) -> None:
        with self._emit_lock:
            if self._closed:
                return
            self._events.put(SampleEvent(latency_ms, time.monotonic()))

    def _pump_stdout(self, proc: Popen[str]) -> None:
        stdout = proc.stdout
        if stdout is None:
            return
        try:
            for line in stdout:
                latency = self._parser.parse(line)
                if latency is not None:
                    self._emit_sample(latency)
        except (OSError, ValueError) as exc:
            if not self.outcome.is_set():
                self._stream_error = exc

    def _drain_stderr(self, proc: Popen[str]) -> None:
        stderr = proc.stderr
        if stderr is None:
            return
        with contextlib.suppress(OSError, ValueError):
            for line in stderr:
                text = line.strip()
                if text:
                    self._stderr_tail.append(text)

    def _supervise(self, proc: Popen[str]) -> None:
        while True:
            if self._cancel.wait(self._poll_interval):
                self._terminate(proc)
                outcome = ProbeOutcome(OutcomeKind.CANCELLED, returncode=proc.returncode)
                break
            if self._stream_error is not None:
                self._terminate(proc)
                outcome = ProbeOutcome(
                    OutcomeKind.STREAM_FAILED,
                    returncode=proc.returncode,
                    error=str(self._stream_error),
                )
                break
            code = proc.poll()
            if code is not None:
                self._join_readers()
                outcome = self._exit_outcome(code)
                break
        self._publish(outcome)
        self._join_readers()
        for pipe in (proc.stdout, proc.stderr):
            if pipe is not None:
                with contextlib.suppress(OSError):
                    pipe.close()

    def _exit_outcome(self, code: int) -> ProbeOutcome:
        detail = "; ".join(self._stderr_tail) or f"exit status {code}"
        if code == 0:
            return ProbeOutcome(OutcomeKind.EXITED, returncode=code, error=detail)
        return ProbeOutcome(OutcomeKind.EXIT_FAILED, returncode=code, error=detail)

    def _terminate(self, proc: Popen[str]) -> None:
        if proc.poll() is not None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=self._terminate_timeout)
        except TimeoutExpired:
            logger.warning("Probe pid=%s ignored SIGTERM; killing", proc.pid)
            proc.kill()
            proc.wait()

    def _join_readers(self) -> None:
        for thread in (self._stdout_thread, self._stderr_thread):
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=self._terminate_timeout)
                if thread.is_alive():
                    logger.warning("Probe reader thread did not finish cleanly")


class SampleProducer:
    """Launches the probe for ``host`` and hands back a :class:`ProbeRun`."""

    def __init__(
        self,
        host: str,
        interval: int = 1,
        *,
        executable: str = DEFAULT_PING_EXECUTABLE,
        parser: LineParser | None = None,
        command: Sequence[str] | None = None,
        terminate_timeout: float = 2.0,
        poll_interval: float = 0.05,
    ) -> None:
        if command is None:
            if not host:
                raise ValueError("host must be a non-empty string")
            if interval <= 0:
                raise ValueError("interval must be a positive number of seconds")
            command = build_ping_command(executable, host, interval)
        self.host = host
        self.interval = interval
        self.command = list(command)
        self.parser = parser if parser is not None else PingLineParser()
        self.terminate_timeout = terminate_timeout
        self.poll_interval = poll_interval

    def start(self, cancel: threading.Event) -> ProbeRun:
        run = ProbeRun(
            self.command,
            self.parser,
            cancel,
            terminate_timeout=self.terminate_timeout,
            poll_interval=self.poll_interval,
        )
        run.launch()
        return run


__all__ = [
    "DEFAULT_PING_EXECUTABLE",
    "ProbeRun",
    "SampleProducer",
    "build_ping_command",
]
