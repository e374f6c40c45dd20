"""Items stored in the in-memory database."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import IntEnum
from typing import Any

from memorydb.errors import DataNotFoundError, InvalidDataTypeError
from memorydb.timefmt import format_timestamp, parse_timestamp

DEFAULT_TTL = timedelta(minutes=5)

# The "zero" timestamp written for unset times; read back as None.
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

Value = str | list[str]


class DataType(IntEnum):
    """Kind of value held by an item."""

    STRING = 0
    STRING_SLICE = 1

    @property
    def label(self) -> str:
        """Name of the kind as shown to API clients."""
        return "string" if self is DataType.STRING else "string_slice"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_value(value: Any) -> tuple[DataType, Value]:
    """Classify ``value`` as a string or a list of strings.

    Lists and tuples are copied into a new list. Anything else raises
    InvalidDataTypeError.
    """
    if isinstance(value, str):
        return DataType.STRING, value
    if isinstance(value, (list, tuple)):
        if not all(isinstance(elem, str) for elem in value):
            raise InvalidDataTypeError()
        return DataType.STRING_SLICE, list(value)
    raise InvalidDataTypeError()


def _encode_time(value: datetime | None) -> str:
    return format_timestamp(ZERO_TIME if value is None else value)


def _decode_time(raw: Any) -> datetime | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError(f"invalid timestamp: {raw!r}")
    parsed = parse_timestamp(raw)
    return None if parsed == ZERO_TIME else parsed


def _decode_stored_value(raw: Any) -> Value | None:
    if raw is None or isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        if not all(elem is None or isinstance(elem, str) for elem in raw):
            raise InvalidDataTypeError()
        return ["" if elem is None else elem for elem in raw]
    raise InvalidDataTypeError()


@dataclass
class Item:
    """A single stored value with its expiry and timestamps.

    A ``ttl`` of None stands for the zero time and therefore counts as expired.
    """

    value: Value | None = None
    kind: DataType = DataType.STRING
    ttl: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def update(self, value: Any, updated_at: datetime, ttl: timedelta | None = None) -> None:
        """Replace the value, optionally resetting the expiry to now plus ``ttl``."""
        if self.value is None:
            raise DataNotFoundError()
        kind, normalized = normalize_value(value)
        self.kind = kind
        self.value = normalized
        if ttl is not None:
            self.ttl = _now() + ttl
        self.updated_at = updated_at

    def push(self, updated_at: datetime, value: str) -> None:
        """Append ``value`` to a list item."""
        if self.kind is not DataType.STRING_SLICE or not isinstance(self.value, list):
            raise InvalidDataTypeError()
        if not isinstance(value, str):
            raise InvalidDataTypeError()
        self.value = [*self.value, value]
        self.updated_at = updated_at

    def pop(self, updated_at: datetime) -> str:
        """Remove and return the last element of a list item."""
        if self.kind is not DataType.STRING_SLICE:
            raise InvalidDataTypeError()
        if not isinstance(self.value, list) or not self.value:
            raise DataNotFoundError()
        *rest, last = self.value
        self.value = rest
        self.updated_at = updated_at
        return last

    def is_expired(self, now: datetime | None = None) -> bool:
        """Return True if the expiry time lies before ``now``."""
        if self.ttl is None:
            return True
        return self.ttl < (_now() if now is None else now)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form used in the persistence log."""
        value = list(self.value) if isinstance(self.value, list) else self.value
        return {
            "value": value,
            "ttl": _encode_time(self.ttl),
            "kind": int(self.kind),
            "created_at": _encode_time(self.created_at),
            "updated_at": _encode_time(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Item:
        """Build an item from the form produced by ``to_dict``."""
        raw_kind = data.get("kind", 0)
        try:
            kind = DataType(raw_kind if raw_kind is not None else 0)
        except ValueError:
            raise InvalidDataTypeError() from None
        return cls(
            value=_decode_stored_value(data.get("value")),
            kind=kind,
            ttl=_decode_time(data.get("ttl")),
            created_at=_decode_time(data.get("created_at")),
            updated_at=_decode_time(data.get("updated_at")),
        )


def new_item(value: Any, ttl: timedelta | None = None) -> Item:
    """Create an item expiring after ``ttl`` (five minutes by default)."""
    kind, normalized = normalize_value(value)
    now = _now()
    return Item(
        value=normalized,
        kind=kind,
        ttl=now + (DEFAULT_TTL if ttl is None else ttl),
        created_at=now,
        updated_at=now,
    )