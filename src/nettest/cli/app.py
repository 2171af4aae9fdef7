"""Command-line entry point for the nettest latency monitor."""

from __future__ import annotations

import argparse
import contextlib
import json
import logging
import os
import signal
import sys
import threading
from collections.abc import Sequence
from logging.handlers import RotatingFileHandler

from nettest.config import CONFIG_ENV_VAR, AppConfig, load_app_config, parse_thresholds
from nettest.contracts.error import BadInputError, Exit, guard_cli
from nettest.pipeline import run_pipeline
from nettest.probe import PingLineParser, ProbeOutcome, SampleProducer
from nettest.stats import StatsEngine, StatsSnapshot
from nettest.tui.render import format_header, format_histogram, format_stats

# --------------------------------------------------------------------
# Logging
# --------------------------------------------------------------------
logger = logging.getLogger("nettest")
logger.setLevel(logging.INFO)
logger.propagate = False

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"
DEFAULT_LOG_MAX_BYTES = 5_000_000
DEFAULT_LOG_BACKUP_COUNT = 5


class JsonFormatter(logging.Formatter):
    """Render log records as JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, DEFAULT_LOG_DATEFMT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(
    use_json: bool = False,
    log_file: str | None = None,
    *,
    level: str = "INFO",
    console: bool = True,
    max_bytes: int = DEFAULT_LOG_MAX_BYTES,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
) -> None:
    """Configure console (and optional rotating file) logging.

    ``console=False`` keeps log lines off the terminal while the dashboard owns it.
    """

    formatter: logging.Formatter
    if use_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(DEFAULT_LOG_FORMAT, DEFAULT_LOG_DATEFMT)

    for handler in list(logger.handlers):
        with contextlib.suppress(Exception):
            handler.close()
        logger.removeHandler(handler)

    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise BadInputError(f"Unknown log level: {level}")
    logger.setLevel(resolved)

    if console:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        logger.addHandler(stream)

    if log_file:
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())


configure_logging()


# --------------------------------------------------------------------
# Arguments
# --------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nettest",
        description="Continuously ping a host and show live latency statistics.",
    )
    parser.add_argument("--host", default=None, help="Hostname to ping (default: google.co.uk)")
    parser.add_argument(
        "--interval", "-d", type=int, default=None, help="Interval in seconds (default: 1)"
    )
    parser.add_argument(
        "--window",
        "-w",
        type=int,
        default=None,
        help="Window size in seconds for stats calculation (default: 5)",
    )
    parser.add_argument("--ping-bin", default=None, help="Probe executable (default: ping)")
    parser.add_argument(
        "--dialect", default=None, help="Probe output dialect: ipv4 or named (default: ipv4)"
    )
    parser.add_argument(
        "--thresholds",
        default=None,
        help="Comma-separated histogram bucket bounds in ms (default: 1,2,5,...,1000)",
    )
    parser.add_argument(
        "--config", default=None, help=f"TOML config file (or set {CONFIG_ENV_VAR})"
    )
    parser.add_argument(
        "--plain",
        action="store_true",
        help="Print statistics on every window rollover instead of running the dashboard",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON")
    parser.add_argument("--log-file", default=None, help="Also write logs to a rotating file")
    parser.add_argument("--log-level", default="INFO", help="Log level (default: %(default)s)")
    return parser


def apply_cli_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    if args.host is not None:
        cfg.probe.host = args.host
    if args.interval is not None:
        cfg.probe.interval = args.interval
    if args.ping_bin is not None:
        cfg.probe.executable = args.ping_bin
    if args.dialect is not None:
        cfg.probe.dialect = args.dialect
    if args.window is not None:
        cfg.stats.window = args.window
    if args.thresholds is not None:
        cfg.stats.thresholds = parse_thresholds(args.thresholds)
    cfg.validate()
    return cfg


def build_pipeline(cfg: AppConfig) -> tuple[SampleProducer, StatsEngine]:
    producer = SampleProducer(
        cfg.probe.host,
        cfg.probe.interval,
        executable=cfg.probe.executable,
        parser=PingLineParser(cfg.probe.dialect),
        terminate_timeout=cfg.probe.terminate_timeout,
    )
    engine = StatsEngine(cfg.stats.window, cfg.stats.thresholds)
    return producer, engine


# --------------------------------------------------------------------
# Runners
# --------------------------------------------------------------------
def run_plain(producer: SampleProducer, engine: StatsEngine) -> ProbeOutcome:
    """Headless mode: print the stats block each time a window completes."""

    cancel = threading.Event()
    seen_rollovers = 0

    def _on_sample(snapshot: StatsSnapshot) -> None:
        nonlocal seen_rollovers
        if snapshot.rollovers == seen_rollovers:
            return
        seen_rollovers = snapshot.rollovers
        print(format_stats(snapshot), flush=True)

    def _on_signal(_signum: int, _frame: object) -> None:
        cancel.set()

    previous = signal.signal(signal.SIGINT, _on_signal)
    try:
        print(format_header(producer.host, producer.interval), flush=True)
        outcome = run_pipeline(producer, engine, cancel, on_sample=_on_sample)
    finally:
        signal.signal(signal.SIGINT, previous)
    final = engine.snapshot()
    print(format_stats(final), flush=True)
    print(format_histogram(final.histogram), flush=True)
    return outcome


@guard_cli
def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    configure_logging(
        args.log_json,
        args.log_file,
        level=args.log_level,
        console=args.plain,
    )

    cfg_path = args.config or os.getenv(CONFIG_ENV_VAR)
    cfg = apply_cli_overrides(load_app_config(cfg_path), args)
    if cfg_path:
        logger.info("Loaded config from %s", cfg_path)

    producer, engine = build_pipeline(cfg)
    if args.plain:
        outcome = run_plain(producer, engine)
    else:
        from nettest.tui.app import run_tui

        result = run_tui(producer, engine)
        if result is None:
            return int(Exit.OK)
        outcome = result

    parser = producer.parser
    if isinstance(parser, PingLineParser):
        logger.info(
            "Probe lines: %d parsed, %d ignored, %d dropped",
            parser.parsed,
            parser.ignored,
            parser.dropped,
        )
    outcome.raise_for_failure()
    return int(Exit.OK)


def console_main() -> None:
    """Entry point for console_scripts."""

    try:
        raise SystemExit(main(sys.argv[1:]))
    except SystemExit:
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("Fatal error: %s", e)
        raise SystemExit(2) from e


__all__ = [
    "JsonFormatter",
    "apply_cli_overrides",
    "build_parser",
    "build_pipeline",
    "configure_logging",
    "console_main",
    "main",
    "run_plain",
]
