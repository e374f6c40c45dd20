"""HTTP client for the database API."""

from __future__ import annotations

import json
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlsplit, urlunsplit

from memorydb.errors import DBError
from memorydb.item import ZERO_TIME
from memorydb.schemas import OKResponse, PushItemToSliceRequest, SetRowRequest, UpdateRowRequest
from memorydb.timefmt import parse_timestamp

DEFAULT_TIMEOUT = 10.0


class ClientError(Exception):
    """A request to the database API failed."""


def _decode_time(raw: Any) -> datetime | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ClientError(f"invalid timestamp in response: {raw!r}")
    try:
        parsed = parse_timestamp(raw)
    except ValueError as exc:
        raise ClientError(str(exc)) from None
    return None if parsed == ZERO_TIME else parsed


def _decode_text(data: Mapping[str, Any], name: str) -> str:
    raw = data.get(name)
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise ClientError(f"invalid {name} in response: {raw!r}")
    return raw


@dataclass
class ApiResponse:
    """A row as returned by the API; ``value`` is a string or a list of strings."""

    key: str = ""
    kind: str = ""
    value: str | list[str] = ""
    ttl: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ApiResponse:
        """Build a response from a decoded JSON object."""
        if not isinstance(data, Mapping):
            raise ClientError("unsupported response body")
        if "value" not in data:
            raise ClientError("unsupported type for value")
        raw = data["value"]
        if raw is None:
            value: str | list[str] = []
        elif isinstance(raw, list) and all(isinstance(elem, str) for elem in raw):
            value = list(raw)
        elif isinstance(raw, str):
            value = raw
        else:
            raise ClientError("unsupported type for value")
        return cls(
            key=_decode_text(data, "key"),
            kind=_decode_text(data, "kind"),
            value=value,
            ttl=_decode_time(data.get("ttl")),
            created_at=_decode_time(data.get("created_at")),
            updated_at=_decode_time(data.get("updated_at")),
        )


class ApiClient:
    """Client for one database server and API version."""

    def __init__(self, url: str, version: str = "v1", timeout: float = DEFAULT_TIMEOUT) -> None:
        self.url = url
        self.prefix = "/api/" + version
        self.timeout = timeout

    def _endpoint(self, *parts: str) -> str:
        split = urlsplit(self.url)
        segments = [
            split.path.strip("/"),
            self.prefix.strip("/"),
            *(quote(part, safe="") for part in parts),
        ]
        path = "/" + "/".join(segment for segment in segments if segment)
        return urlunsplit((split.scheme, split.netloc, path, "", ""))

    def _call(
        self,
        method: str,
        endpoint: str,
        action: str,
        payload: Mapping[str, Any] | None = None,
    ) -> Any:
        data = None
        headers: dict[str, str] = {}
        if payload is not None:
            try:
                data = json.dumps(payload).encode("utf-8")
            except (TypeError, ValueError) as exc:
                raise ClientError(f"failed to marshal request body for {endpoint}: {exc}") from exc
            headers["Content-Type"] = "application/json"
        request = urllib.request.Request(endpoint, data=data, method=method, headers=headers)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                status = response.status
                raw = response.read()
        except HTTPError as exc:
            exc.close()
            raise ClientError(
                f"failed to {action} {endpoint}: received status code {exc.code}"
            ) from None
        except (URLError, OSError) as exc:
            raise ClientError(f"failed to {action} {endpoint}: {exc}") from exc
        if status != 200:
            raise ClientError(f"failed to {action} {endpoint}: received status code {status}")
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise ClientError(f"failed to decode response from {endpoint}: {exc}") from exc

    @staticmethod
    def _ok(data: Any, endpoint: str) -> OKResponse:
        if not isinstance(data, Mapping):
            raise ClientError(f"failed to decode response from {endpoint}: not an object")
        return OKResponse(message=_decode_text(data, "message"))

    def get(self, key: str) -> ApiResponse:
        """Return the row stored at ``key``."""
        endpoint = self._endpoint(key)
        return ApiResponse.from_dict(self._call("GET", endpoint, "get item from"))

    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> OKResponse:
        """Store ``value`` at ``key``."""
        endpoint = self._endpoint("set")
        try:
            payload = SetRowRequest(key=key, value=value, ttl=ttl).to_dict()
        except DBError as exc:
            raise ClientError(f"failed to marshal request body for {endpoint}: {exc}") from exc
        return self._ok(self._call("POST", endpoint, "set item in", payload), endpoint)

    def remove(self, key: str) -> OKResponse:
        """Delete the row stored at ``key``."""
        endpoint = self._endpoint(key)
        return self._ok(self._call("DELETE", endpoint, "delete item from"), endpoint)

    def update(self, key: str, value: Any, ttl: timedelta | None = None) -> OKResponse:
        """Replace the value stored at ``key``."""
        endpoint = self._endpoint(key)
        try:
            payload = UpdateRowRequest(value=value, ttl=ttl).to_dict()
        except DBError as exc:
            raise ClientError(f"failed to marshal request body for {endpoint}: {exc}") from exc
        return self._ok(self._call("PATCH", endpoint, "update item in", payload), endpoint)

    def push(self, key: str, value: str, ttl: timedelta | None = None) -> ApiResponse:
        """Append ``value`` to the list stored at ``key`` and return the row."""
        endpoint = self._endpoint(key, "push")
        payload = PushItemToSliceRequest(value=value, ttl=ttl).to_dict()
        return ApiResponse.from_dict(self._call("PATCH", endpoint, "push item to", payload))

    def pop(self, key: str) -> ApiResponse:
        """Drop the last element of the list stored at ``key`` and return the row."""
        endpoint = self._endpoint(key, "pop")
        return ApiResponse.from_dict(self._call("PATCH", endpoint, "pop item from"))