"""Textual dashboard showing live ping statistics."""

from __future__ import annotations

import contextlib
import logging
import threading

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Footer, Header, Static

from nettest.contracts.error import Exit
from nettest.pipeline import run_pipeline
from nettest.probe import ProbeOutcome, SampleProducer
from nettest.stats import StatsEngine, StatsSnapshot

from .render import format_header, format_histogram, format_stats

logger = logging.getLogger(__name__)


class PingDashboardApp(App[ProbeOutcome]):
    """Runs the consumer loop on a worker thread and renders its snapshots."""

    CSS = """
    Screen { layout: vertical; }
    #title { padding: 1 2; background: #1f2937; color: #e5e7eb; }
    #stats { padding: 1 2; }
    #histogram { padding: 0 2; color: #94a3b8; }
    """

    BINDINGS = [
        Binding("q", "stop", "Quit"),
        Binding("escape", "stop", "Quit", show=False),
        Binding("ctrl+c", "stop", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        producer: SampleProducer,
        engine: StatsEngine,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        super().__init__()
        self._producer = producer
        self._engine = engine
        self._cancel = cancel if cancel is not None else threading.Event()
        self._initial = engine.snapshot()
        self.consumer_done = threading.Event()

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static(format_header(self._producer.host, self._producer.interval), id="title")
        yield Static(format_stats(self._initial), id="stats")
        yield Static(format_histogram(self._initial.histogram), id="histogram")
        yield Footer()

    def on_mount(self) -> None:
        self._stats_view = self.query_one("#stats", Static)
        self._histogram_view = self.query_one("#histogram", Static)
        self.run_worker(self._consume, thread=True, exclusive=True, name="probe")

    def action_stop(self) -> None:
        # The worker notices the signal, reaps the probe and then exits the app.
        self._cancel.set()

    def render_snapshot(self, snapshot: StatsSnapshot) -> None:
        self._stats_view.update(format_stats(snapshot))
        self._histogram_view.update(format_histogram(snapshot.histogram))

    def finish(self, outcome: ProbeOutcome) -> None:
        code = Exit.OK if outcome.ok else Exit.PROBE
        self.exit(outcome, return_code=int(code))

    def _consume(self) -> None:
        try:
            outcome = run_pipeline(
                self._producer,
                self._engine,
                self._cancel,
                on_sample=self._post_snapshot,
            )
        finally:
            self.consumer_done.set()
        with contextlib.suppress(RuntimeError):
            self.call_from_thread(self.finish, outcome)

    def _post_snapshot(self, snapshot: StatsSnapshot) -> None:
        self.call_from_thread(self.render_snapshot, snapshot)


def run_tui(
    producer: SampleProducer,
    engine: StatsEngine,
    cancel: threading.Event | None = None,
) -> ProbeOutcome | None:
    """Launch the dashboard and return the probe outcome once it closes."""

    stop = cancel if cancel is not None else threading.Event()
    app = PingDashboardApp(producer, engine, cancel=stop)
    try:
        return app.run()
    finally:
        stop.set()
        if not app.consumer_done.wait(producer.terminate_timeout + 1.0):
            logger.warning("Probe consumer did not stop before the dashboard closed")


__all__ = ["PingDashboardApp", "run_tui"]
