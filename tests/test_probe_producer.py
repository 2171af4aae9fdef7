from __future__ import annotations

import os
import sys
import threading
import time
from collections.abc import Callable

import pytest

from nettest.probe import (
    CancelRequested,
    OutcomeEvent,
    OutcomeKind,
    PingLineParser,
    ProbeEvent,
    ProbeRun,
    SampleEvent,
    SampleProducer,
    build_ping_command,
)
from tests.util.probe_scripts import data_line, raw_command, script_command

pytestmark = pytest.mark.skipif(
    sys.platform == "win32", reason="Subprocess signalling differs on Windows"
)


def _collect(
    run: ProbeRun,
    cancel: threading.Event,
    *,
    stop_when: Callable[[list[ProbeEvent]], bool] | None = None,
    timeout: float = 10.0,
) -> list[ProbeEvent]:
    """Drain ``run.events()``; a watchdog cancels the run if the test stalls."""

    watchdog = threading.Timer(timeout, cancel.set)
    watchdog.start()
    events: list[ProbeEvent] = []
    try:
        for event in run.events():
            events.append(event)
            if stop_when is not None and stop_when(events):
                cancel.set()
    finally:
        watchdog.cancel()
    return events


def _samples(events: list[ProbeEvent]) -> list[float]:
    return [event.latency_ms for event in events if isinstance(event, SampleEvent)]


def test_build_ping_command() -> None:
    assert build_ping_command("ping", "example.com", 2) == ["ping", "example.com", "-i", "2"]


def test_producer_validates_arguments() -> None:
    with pytest.raises(ValueError):
        SampleProducer("", 1)
    with pytest.raises(ValueError):
        SampleProducer("example.com", 0)
    producer = SampleProducer("example.com", 3, executable="/usr/bin/ping")
    assert producer.command == ["/usr/bin/ping", "example.com", "-i", "3"]


def test_samples_arrive_in_order_then_cancel_stops_probe() -> None:
    values = [f"{n}.5" for n in range(1, 11)]
    command = script_command(
        *(data_line(value, seq) for seq, value in enumerate(values, 1)),
        "this line is noise",
    )
    parser = PingLineParser()
    producer = SampleProducer("1.2.3.4", 1, command=command, parser=parser)
    cancel = threading.Event()
    run = producer.start(cancel)

    events = _collect(run, cancel, stop_when=lambda seen: len(_samples(seen)) == len(values))
    outcome = run.close()

    assert _samples(events) == [float(value) for value in values]
    assert events[-1] == CancelRequested()
    assert outcome is not None and outcome.kind is OutcomeKind.CANCELLED
    assert not run.is_running()
    assert parser.ignored == 1


def test_cancel_before_any_sample() -> None:
    command = script_command(data_line("1.0"))
    producer = SampleProducer("1.2.3.4", 1, command=command)
    cancel = threading.Event()
    cancel.set()
    run = producer.start(cancel)

    events = list(run.events())
    outcome = run.close()

    assert events == [CancelRequested()]
    assert outcome is not None and outcome.kind is OutcomeKind.CANCELLED
    assert run.pid is not None
    assert not run.is_running()


def test_start_failure_for_missing_executable() -> None:
    producer = SampleProducer("1.2.3.4", 1, executable="/nonexistent/nettest-ping")
    cancel = threading.Event()
    run = producer.start(cancel)

    events = _collect(run, cancel)

    assert len(events) == 1
    assert isinstance(events[0], OutcomeEvent)
    assert events[0].outcome.kind is OutcomeKind.START_FAILED
    assert run.pid is None
    assert run.outcome.get() == events[0].outcome
    assert not cancel.is_set()


def test_nonzero_exit_reports_failure_with_stderr() -> None:
    command = script_command(
        data_line("4.0", 1),
        data_line("8.0", 2),
        exit_code=2,
        stderr="ping: unknown host nowhere.invalid",
    )
    producer = SampleProducer("nowhere.invalid", 1, command=command)
    cancel = threading.Event()
    run = producer.start(cancel)

    events = _collect(run, cancel)

    assert _samples(events) == [4.0, 8.0]
    last = events[-1]
    assert isinstance(last, OutcomeEvent)
    assert last.outcome.kind is OutcomeKind.EXIT_FAILED
    assert last.outcome.returncode == 2
    assert "unknown host" in (last.outcome.error or "")
    assert run.close() == last.outcome


def test_clean_exit_is_still_terminal() -> None:
    command = script_command(data_line("3.3"), exit_code=0)
    producer = SampleProducer("1.2.3.4", 1, command=command)
    cancel = threading.Event()
    run = producer.start(cancel)

    events = _collect(run, cancel)

    assert _samples(events) == [3.3]
    last = events[-1]
    assert isinstance(last, OutcomeEvent)
    assert last.outcome.kind is OutcomeKind.EXITED
    assert not last.outcome.ok


def test_late_cancel_does_not_replace_outcome() -> None:
    command = script_command(exit_code=1)
    producer = SampleProducer("1.2.3.4", 1, command=command)
    cancel = threading.Event()
    with producer.start(cancel) as run:
        events = _collect(run, cancel)
    assert isinstance(events[-1], OutcomeEvent)
    assert run.outcome.get() is not None
    assert run.outcome.get().kind is OutcomeKind.EXIT_FAILED


def test_stubborn_probe_is_killed() -> None:
    body = (
        "import signal, time\n"
        "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
        "print('ready', flush=True)\n"
        "time.sleep(60)\n"
    )
    producer = SampleProducer(
        "1.2.3.4", 1, command=[sys.executable, "-u", "-c", body], terminate_timeout=0.3
    )
    cancel = threading.Event()
    run = producer.start(cancel)
    # Give the child time to install its handler before asking it to stop.
    time.sleep(0.5)
    outcome = run.close()
    assert outcome is not None and outcome.kind is OutcomeKind.CANCELLED
    assert not run.is_running()


def test_stream_failure_terminates_probe() -> None:
    producer = SampleProducer("1.2.3.4", 1, command=script_command())
    cancel = threading.Event()
    run = producer.start(cancel)
    run._stream_error = OSError("pipe broken")

    events = _collect(run, cancel)

    last = events[-1]
    assert isinstance(last, OutcomeEvent)
    assert last.outcome.kind is OutcomeKind.STREAM_FAILED
    assert "pipe broken" in (last.outcome.error or "")
    run.close()
    assert not run.is_running()


def test_closed_stdout_reports_stream_failure() -> None:
    command = raw_command(
        "import time",
        "while True:",
        "    try:",
        f"        print({data_line('1.0')!r}, flush=True)",
        "    except BrokenPipeError:",
        "        pass",
        "    time.sleep(0.05)",
    )
    producer = SampleProducer("1.2.3.4", 1, command=command)
    cancel = threading.Event()
    run = producer.start(cancel)
    closed = False

    def close_stdout_after_first_sample(seen: list[ProbeEvent]) -> bool:
        nonlocal closed
        if not closed and _samples(seen):
            closed = True
            assert run._proc is not None and run._proc.stdout is not None
            run._proc.stdout.close()
        return False

    events = _collect(run, cancel, stop_when=close_stdout_after_first_sample)

    assert closed
    last = events[-1]
    assert isinstance(last, OutcomeEvent)
    assert last.outcome.kind is OutcomeKind.STREAM_FAILED
    run.close()
    assert not run.is_running()


def test_undecodable_output_is_dropped_and_run_continues() -> None:
    command = raw_command(
        "import sys, time",
        "sys.stdout.buffer.write(b'\\xff\\xfe garbage\\n')",
        "sys.stdout.buffer.flush()",
        f"print({data_line('2.0')!r}, flush=True)",
        "time.sleep(60)",
    )
    parser = PingLineParser()
    producer = SampleProducer("1.2.3.4", 1, command=command, parser=parser)
    cancel = threading.Event()
    run = producer.start(cancel)

    events = _collect(run, cancel, stop_when=lambda seen: bool(_samples(seen)))
    outcome = run.close()

    assert _samples(events) == [2.0]
    assert outcome is not None and outcome.kind is OutcomeKind.CANCELLED
    assert parser.dropped == 1


def test_ping_child_runs_in_its_own_process_group() -> None:
    producer = SampleProducer("1.2.3.4", 1, command=script_command())
    cancel = threading.Event()
    run = producer.start(cancel)
    try:
        assert run.pid is not None
        assert os.getpgid(run.pid) != os.getpgrp()
    finally:
        run.close()
    assert not run.is_running()
