"""Continuous ping latency monitor."""

from . import config, contracts, pipeline, probe, stats

__version__ = "0.1.0"

__all__ = [
    "config",
    "contracts",
    "pipeline",
    "probe",
    "stats",
]
