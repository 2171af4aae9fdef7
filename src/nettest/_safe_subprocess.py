"""Safe wrapper for spawning the long-running probe subprocess."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess  # noqa: S404  # nosec B404 - subprocess usage governed via validation helpers
from collections.abc import Mapping, MutableMapping, Sequence
from typing import Any, cast

logger = logging.getLogger(__name__)

PIPE = subprocess.PIPE
TimeoutExpired = subprocess.TimeoutExpired


def _merge_env(env: Mapping[str, str] | None) -> MutableMapping[str, str] | None:
    if env is None:
        return None
    merged: dict[str, str] = dict(os.environ)
    merged.update(env)
    return merged


def _validate_args(args: Sequence[str]) -> list[str]:
    if not isinstance(args, list | tuple) or not args:
        raise ValueError("args must be a non-empty sequence of strings")
    if not all(isinstance(arg, str) for arg in args):
        raise ValueError("all subprocess arguments must be strings")
    return list(args)


def format_command(args: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in args)


def safe_popen(
    args: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    text: bool = True,
    bufsize: int = 1,
    stdout: int | None = PIPE,
    stderr: int | None = PIPE,
    **kwargs: object,
) -> subprocess.Popen[str]:
    """Spawn a subprocess for line-oriented streaming.

    Raises ``OSError`` when the executable cannot be launched; callers decide how
    that maps onto their own failure reporting.
    """

    if "shell" in kwargs:
        raise ValueError("shell-based invocation is not permitted in safe_popen")
    if "executable" in kwargs:
        raise ValueError("Overriding the executable is not permitted in safe_popen")
    command = _validate_args(args)
    cmd_repr = format_command(command)
    logger.debug("Spawning process: %s", cmd_repr)
    extra_kwargs = cast(dict[str, Any], dict(kwargs))
    try:
        return subprocess.Popen(  # noqa: S603  # nosec B603 - command validated via _validate_args
            command,
            env=_merge_env(env),
            text=text,
            bufsize=bufsize,
            stdout=stdout,
            stderr=stderr,
            **extra_kwargs,
        )
    except OSError as exc:
        logger.error("Failed to spawn process %s: %s", cmd_repr, exc)
        raise


__all__ = [
    "PIPE",
    "TimeoutExpired",
    "format_command",
    "safe_popen",
]
