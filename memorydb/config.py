"""Application configuration read from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta

from memorydb.enums import VerboseLevel, is_valid_verbose_level
from memorydb.timefmt import parse_duration

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class ConfigError(ValueError):
    """The configuration could not be loaded or is invalid."""


@dataclass
class Config:
    """Settings for the server and the database."""

    verbose: VerboseLevel = VerboseLevel.INFO
    api_version: str = "v1"
    port: int = 8080
    health_port: int = 8081
    default_ttl: timedelta = field(default_factory=lambda: timedelta(minutes=5))
    default_cleanup_interval: timedelta = field(default_factory=lambda: timedelta(minutes=10))
    persistence_enabled: bool = False
    db_path: str = "/tmp/memorydb.db"


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigError(f"invalid value for {name}: {raw!r}") from None


def _parse_bool(name: str, raw: str) -> bool:
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ConfigError(f"invalid value for {name}: {raw!r}")


def _parse_duration(name: str, raw: str) -> timedelta:
    # A bare number counts as nanoseconds.
    text = raw if any(ch in "nsu\u00b5mh" for ch in raw) else raw + "ns"
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise ConfigError(f"invalid value for {name}: {exc}") from None


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Build a Config from ``environ`` (the process environment by default).

    Unset or empty variables keep their defaults.
    """
    env = os.environ if environ is None else environ

    def lookup(name: str) -> str | None:
        return env.get(name) or None

    values: dict[str, object] = {}
    if (raw := lookup("API_VERSION")) is not None:
        values["api_version"] = raw
    if (raw := lookup("PORT")) is not None:
        values["port"] = _parse_int("PORT", raw)
    if (raw := lookup("HEALTH_PORT")) is not None:
        values["health_port"] = _parse_int("HEALTH_PORT", raw)
    if (raw := lookup("DEFAULT_TTL")) is not None:
        values["default_ttl"] = _parse_duration("DEFAULT_TTL", raw)
    if (raw := lookup("DEFAULT_CLEANUP_INTERVAL")) is not None:
        values["default_cleanup_interval"] = _parse_duration("DEFAULT_CLEANUP_INTERVAL", raw)
    if (raw := lookup("PERSISTENCE_ENABLED")) is not None:
        values["persistence_enabled"] = _parse_bool("PERSISTENCE_ENABLED", raw)
    if (raw := lookup("DB_PATH")) is not None:
        values["db_path"] = raw

    verbose = lookup("VERBOSE")
    if verbose is not None:
        if not is_valid_verbose_level(verbose):
            raise ConfigError(f"invalid verbose level: {verbose}")
        values["verbose"] = VerboseLevel(verbose)

    config = Config(**values)
    if config.persistence_enabled and not config.db_path:
        raise ConfigError("DB_PATH must be set when persistence is enabled")
    return config