"""Contract helpers for the nettest CLI."""

from .error import (
    BadInputError,
    EnvelopeError,
    ErrorEnvelope,
    Exit,
    IOErrorEnvelope,
    ProbeError,
    ProbeExitError,
    ProbeStartError,
    ProbeStreamError,
    die,
    guard_cli,
)

__all__ = [
    "Exit",
    "ErrorEnvelope",
    "EnvelopeError",
    "BadInputError",
    "ProbeError",
    "ProbeStartError",
    "ProbeStreamError",
    "ProbeExitError",
    "IOErrorEnvelope",
    "guard_cli",
    "die",
]
