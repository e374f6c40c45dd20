"""Request and response bodies of the HTTP API, with decoding and validation."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from memorydb.errors import InvalidDataTypeError
from memorydb.item import ZERO_TIME, Item, Value, normalize_value
from memorydb.timefmt import format_duration, format_timestamp, parse_duration

_DECODER = json.JSONDecoder()


class RequestDecodeError(ValueError):
    """The request body is not valid JSON for the expected shape."""


class ValidationError(ValueError):
    """The request body decoded but is missing required fields."""


def _json_kind(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "null"


def _load_object(raw: str | bytes, type_name: str) -> Mapping[str, Any]:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RequestDecodeError(str(exc)) from None
    text = raw.lstrip()
    if not text:
        raise RequestDecodeError("EOF")
    try:
        obj, _ = _DECODER.raw_decode(text)
    except json.JSONDecodeError as exc:
        raise RequestDecodeError(str(exc)) from None
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise RequestDecodeError(f"cannot unmarshal {_json_kind(obj)} into value of type {type_name}")
    return obj


def _field(obj: Mapping[str, Any], name: str) -> tuple[bool, Any]:
    if name in obj:
        return True, obj[name]
    folded = name.casefold()
    for key, value in obj.items():
        if key.casefold() == folded:
            return True, value
    return False, None


def _decode_string(obj: Mapping[str, Any], name: str, type_name: str) -> str:
    _, value = _field(obj, name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise RequestDecodeError(
            f"cannot unmarshal {_json_kind(value)} into field {type_name}.{name} of type string"
        )
    return value


def _decode_value(obj: Mapping[str, Any]) -> Value | None:
    present, value = _field(obj, "value")
    if not present:
        return None
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list) and all(elem is None or isinstance(elem, str) for elem in value):
        return ["" if elem is None else elem for elem in value]
    raise RequestDecodeError(InvalidDataTypeError().message)


def _decode_ttl(obj: Mapping[str, Any], type_name: str) -> timedelta | None:
    _, value = _field(obj, "ttl")
    if value is None:
        return None
    if not isinstance(value, str):
        raise RequestDecodeError(
            f"cannot unmarshal {_json_kind(value)} into field {type_name}.ttl of type string"
        )
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise RequestDecodeError(str(exc)) from None


def _require(**fields: bool) -> None:
    missing = [f"field '{name}' is required" for name, present in fields.items() if not present]
    if missing:
        raise ValidationError(", ".join(missing))


def _with_ttl(body: dict[str, Any], ttl: timedelta | None) -> dict[str, Any]:
    if ttl is not None:
        body["ttl"] = format_duration(ttl)
    return body


def _encode_time(value: datetime | None) -> str:
    return format_timestamp(ZERO_TIME if value is None else value)


@dataclass
class SetRowRequest:
    """Body of a request that stores a new row."""

    key: str
    value: Value
    ttl: timedelta | None = None

    def to_dict(self) -> dict[str, Any]:
        _, value = normalize_value(self.value)
        return _with_ttl({"key": self.key, "value": value}, self.ttl)


@dataclass
class UpdateRowRequest:
    """Body of a request that replaces the value of a row."""

    value: Value
    ttl: timedelta | None = None

    def to_dict(self) -> dict[str, Any]:
        _, value = normalize_value(self.value)
        return _with_ttl({"value": value}, self.ttl)


@dataclass
class PushItemToSliceRequest:
    """Body of a request that appends a string to a list row."""

    value: str
    ttl: timedelta | None = None

    def to_dict(self) -> dict[str, Any]:
        return _with_ttl({"value": self.value}, self.ttl)


@dataclass
class OKResponse:
    """Response of an operation that succeeded without returning a row."""

    message: str = "ok"

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message}


@dataclass
class RowResponse:
    """A row as returned to API clients."""

    key: str
    kind: str
    value: Value | None
    ttl: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        value = list(self.value) if isinstance(self.value, list) else self.value
        return {
            "key": self.key,
            "kind": self.kind,
            "value": value,
            "ttl": _encode_time(self.ttl),
            "created_at": _encode_time(self.created_at),
            "updated_at": _encode_time(self.updated_at),
        }

    @classmethod
    def from_item(cls, key: str, item: Item) -> RowResponse:
        value = list(item.value) if isinstance(item.value, list) else item.value
        return cls(
            key=key,
            kind=item.kind.label,
            value=value,
            ttl=item.ttl,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


def decode_set_request(raw: str | bytes) -> SetRowRequest:
    """Decode and validate the body of a set request."""
    obj = _load_object(raw, "SetRowRequest")
    key = _decode_string(obj, "key", "SetRowRequest")
    value = _decode_value(obj)
    ttl = _decode_ttl(obj, "SetRowRequest")
    _require(Key=bool(key), Value=value is not None)
    return SetRowRequest(key=key, value=value, ttl=ttl)


def decode_update_request(raw: str | bytes) -> UpdateRowRequest:
    """Decode and validate the body of an update request."""
    obj = _load_object(raw, "UpdateRowRequest")
    value = _decode_value(obj)
    ttl = _decode_ttl(obj, "UpdateRowRequest")
    _require(Value=value is not None)
    return UpdateRowRequest(value=value, ttl=ttl)


def decode_push_request(raw: str | bytes) -> PushItemToSliceRequest:
    """Decode and validate the body of a push request."""
    obj = _load_object(raw, "PushItemToSliceRequest")
    value = _decode_string(obj, "value", "PushItemToSliceRequest")
    ttl = _decode_ttl(obj, "PushItemToSliceRequest")
    _require(Value=bool(value))
    return PushItemToSliceRequest(value=value, ttl=ttl)