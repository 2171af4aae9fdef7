"""Typed configuration loader for nettest."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .contracts.error import BadInputError, IOErrorEnvelope
from .probe.parser import LINE_PATTERNS
from .stats.window import DEFAULT_THRESHOLDS_MS, validate_thresholds

CONFIG_ENV_VAR = "NETTEST_CONFIG"


def parse_thresholds(raw: str | Sequence[Any]) -> tuple[int, ...]:
    """Parse ``"1,2,5"`` (or a TOML array) into integer millisecond bounds."""

    try:
        items = raw.split(",") if isinstance(raw, str) else list(raw)
        return tuple(int(str(item).strip()) for item in items if str(item).strip())
    except (TypeError, ValueError) as exc:
        raise BadInputError(f"Invalid histogram thresholds: {raw!r}") from exc


def _coerce_int(value: Any) -> int:
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{value!r} is not a whole number")
    return int(value)


def _require_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


@dataclass
class ProbePolicy:
    host: str = "google.co.uk"
    interval: int = 1
    executable: str = "ping"
    dialect: str = "ipv4"
    terminate_timeout: float = 2.0

    def validate(self) -> None:
        if not self.host.strip():
            raise BadInputError("probe.host must be a non-empty string")
        if self.interval <= 0:
            raise BadInputError("probe.interval must be > 0")
        if not self.executable.strip():
            raise BadInputError("probe.executable must be a non-empty string")
        if self.dialect.strip().lower() not in LINE_PATTERNS:
            choices = ", ".join(sorted(LINE_PATTERNS))
            raise BadInputError(f"probe.dialect must be one of: {choices}")
        if self.terminate_timeout <= 0:
            raise BadInputError("probe.terminate_timeout must be > 0")


@dataclass
class StatsPolicy:
    window: int = 5
    thresholds: tuple[int, ...] = DEFAULT_THRESHOLDS_MS

    def validate(self) -> None:
        if self.window <= 0:
            raise BadInputError("stats.window must be > 0")
        try:
            validate_thresholds(self.thresholds)
        except ValueError as exc:
            raise BadInputError(f"stats.thresholds: {exc}") from exc


@dataclass
class AppConfig:
    probe: ProbePolicy = field(default_factory=ProbePolicy)
    stats: StatsPolicy = field(default_factory=StatsPolicy)

    @classmethod
    def load(cls, path: Path | None) -> AppConfig:
        if path is None:
            cfg = cls()
        else:
            try:
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            except FileNotFoundError as exc:
                raise BadInputError(f"Config file not found: {path}") from exc
            except OSError as exc:
                raise IOErrorEnvelope(f"Cannot read config file {path}: {exc}") from exc
            except tomllib.TOMLDecodeError as exc:
                raise BadInputError(f"Invalid TOML: {exc}") from exc
            cfg = cls.from_dict(data)
        cfg.apply_env_overrides(os.environ)
        cfg.validate()
        return cfg

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        probe_data = data.get("probe", {})
        if not isinstance(probe_data, dict):
            raise BadInputError("[probe] section must be a table")
        stats_data = data.get("stats", {})
        if not isinstance(stats_data, dict):
            raise BadInputError("[stats] section must be a table")
        probe_kwargs = dict(probe_data)
        stats_kwargs = dict(stats_data)

        def coerce(
            section: str, kwargs: dict[str, Any], key: str, caster: Callable[[Any], Any]
        ) -> None:
            if key not in kwargs:
                return
            value = kwargs[key]
            # TOML booleans would otherwise pass as 0/1.
            if isinstance(value, bool):
                raise BadInputError(f"{section}.{key} must not be a boolean")
            try:
                kwargs[key] = caster(value)
            except (TypeError, ValueError) as exc:
                raise BadInputError(f"{section}.{key}: invalid value {value!r}") from exc

        for key in ("host", "executable", "dialect"):
            coerce("probe", probe_kwargs, key, _require_str)
        coerce("probe", probe_kwargs, "interval", _coerce_int)
        coerce("probe", probe_kwargs, "terminate_timeout", float)
        coerce("stats", stats_kwargs, "window", _coerce_int)
        if "thresholds" in stats_kwargs:
            stats_kwargs["thresholds"] = parse_thresholds(stats_kwargs["thresholds"])

        try:
            probe = ProbePolicy(**probe_kwargs)
            stats = StatsPolicy(**stats_kwargs)
        except TypeError as exc:
            raise BadInputError(f"Unknown config key: {exc}") from exc
        return cls(probe=probe, stats=stats)

    def apply_env_overrides(self, env: Mapping[str, str]) -> None:
        mapping: dict[str, tuple[object, str, Callable[[str], Any]]] = {
            "NETTEST_HOST": (self.probe, "host", str),
            "NETTEST_INTERVAL": (self.probe, "interval", int),
            "NETTEST_PING_BIN": (self.probe, "executable", str),
            "NETTEST_DIALECT": (self.probe, "dialect", str),
            "NETTEST_WINDOW": (self.stats, "window", int),
            "NETTEST_THRESHOLDS": (self.stats, "thresholds", parse_thresholds),
        }
        for key, (section, attr, caster) in mapping.items():
            raw_value = env.get(key)
            if raw_value is None:
                continue
            try:
                value = caster(raw_value)
            except ValueError as exc:
                raise BadInputError(f"Invalid env override {key}={raw_value!r}") from exc
            setattr(section, attr, value)

    def validate(self) -> None:
        self.probe.validate()
        self.stats.validate()


def load_app_config(path: str | None) -> AppConfig:
    config_path = Path(path) if path else None
    return AppConfig.load(config_path)


__all__ = [
    "AppConfig",
    "CONFIG_ENV_VAR",
    "ProbePolicy",
    "StatsPolicy",
    "load_app_config",
    "parse_thresholds",
]
