"""Structured JSON logging to a stream."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TextIO

from memorydb.enums import VerboseLevel
from memorydb.timefmt import format_timestamp

LOGGER_NAME = "memorydb"

_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
}


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object with time, level, msg and extra fields."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc).astimezone()
        payload = {
            "time": format_timestamp(created),
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname),
            "msg": record.getMessage(),
        }
        payload.update(
            (name, value)
            for name, value in vars(record).items()
            if name not in _RESERVED and not name.startswith("_")
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def new_logger(level: str = VerboseLevel.INFO, stream: TextIO | None = None) -> logging.Logger:
    """Return the package logger writing JSON lines; unknown levels fall back to info."""
    py_level = logging.DEBUG if level == VerboseLevel.DEBUG else logging.INFO
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout if stream is None else stream)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(py_level)
    logger.propagate = False
    return logger