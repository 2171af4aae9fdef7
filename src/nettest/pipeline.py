"""Consumer loop tying a probe run to the statistics engine."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from nettest.probe import (
    CancelRequested,
    OutcomeEvent,
    OutcomeKind,
    ProbeOutcome,
    SampleEvent,
    SampleProducer,
)
from nettest.stats import StatsEngine, StatsSnapshot

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[StatsSnapshot], None]


def run_pipeline(
    producer: SampleProducer,
    engine: StatsEngine,
    cancel: threading.Event,
    on_sample: SnapshotCallback | None = None,
) -> ProbeOutcome:
    """Feed samples into ``engine`` until the probe ends or ``cancel`` fires.

    This loop is the engine's only writer. The probe is always stopped and reaped
    before returning.
    """

    run = producer.start(cancel)
    outcome: ProbeOutcome | None = None
    try:
        for event in run.events():
            if isinstance(event, SampleEvent):
                engine.update(event.latency_ms)
                if on_sample is not None:
                    on_sample(engine.snapshot())
            elif isinstance(event, OutcomeEvent):
                outcome = event.outcome
            elif isinstance(event, CancelRequested):
                logger.debug("Cancellation observed by consumer loop")
    finally:
        final = run.close()
    if outcome is None:
        outcome = final or ProbeOutcome(OutcomeKind.CANCELLED)
    return outcome


__all__ = ["SnapshotCallback", "run_pipeline"]
