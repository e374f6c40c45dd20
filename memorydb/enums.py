"""Enumerations shared across the database, configuration and transport layers."""

from __future__ import annotations

from enum import StrEnum


class DBCommand(StrEnum):
    """Commands recorded in the persistence log."""

    SET = "set"
    UPDATE = "update"
    REMOVE = "remove"
    PUSH = "push"
    POP = "pop"


class VerboseLevel(StrEnum):
    """Logging verbosity accepted by the configuration."""

    DEBUG = "debug"
    INFO = "info"


def is_valid_command(value: str) -> bool:
    """Return True if ``value`` names a known database command."""
    return value in DBCommand._value2member_map_


def is_valid_verbose_level(value: str) -> bool:
    """Return True if ``value`` names a known verbosity level."""
    return value in VerboseLevel._value2member_map_