"""HTTP request handlers that turn API calls into store operations."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from memorydb.errors import (
    ApiError,
    DataNotFoundError,
    DBError,
    KeyExpiredError,
    StoreError,
    internal_server_error,
    invalid_json,
    invalid_request,
    item_not_found,
    key_has_expired,
    url_param_not_found,
)
from memorydb.logger import LOGGER_NAME
from memorydb.schemas import (
    OKResponse,
    RequestDecodeError,
    RowResponse,
    ValidationError,
    decode_push_request,
    decode_set_request,
    decode_update_request,
)

JSON_CONTENT_TYPE = "application/json"

_log = logging.getLogger(LOGGER_NAME)


@dataclass
class Response:
    """Status, body and content type of an HTTP response."""

    status: int
    body: Any
    content_type: str = JSON_CONTENT_TYPE

    def encode(self) -> bytes:
        """Return the body as it is written to the wire."""
        if self.content_type == JSON_CONTENT_TYPE:
            return json.dumps(self.body, ensure_ascii=False).encode("utf-8")
        return str(self.body).encode("utf-8")


def _ok() -> Response:
    return Response(int(HTTPStatus.OK), OKResponse(message="ok").to_dict())


def _decode_error(exc: Exception) -> ApiError:
    if isinstance(exc, ValidationError):
        return invalid_request(str(exc))
    text = f"failed to decode JSON: {exc}"
    return invalid_json(text)


def wrap_error(err: BaseException) -> Response:
    """Turn an error into a JSON error response; unknown errors become a 500."""
    if isinstance(err, ApiError):
        api_error = err
        detail = err.message
    else:
        api_error = internal_server_error()
        detail = str(err)
    _log.error(
        "API error",
        extra={"code": api_error.code, "detail": detail, "status": api_error.http_status},
    )
    return Response(api_error.http_status, api_error.to_dict())


def wrap_db_error(err: BaseException) -> ApiError:
    """Map a store error to the API error reported to the client."""
    if isinstance(err, DataNotFoundError):
        return item_not_found().with_message(err.message, err.sys_message)
    if isinstance(err, KeyExpiredError):
        return key_has_expired().with_message(err.message, err.sys_message)
    if isinstance(err, DBError):
        return internal_server_error().with_message(err.message, err.sys_message)
    return internal_server_error(f"internal server error: {err}")


class Handler:
    """Handlers for each API endpoint, working against a store."""

    def __init__(self, logger: logging.Logger | None, db: Any) -> None:
        self._logger = logger if logger is not None else _log
        self._db = db

    def _row(self, key: str, item: Any) -> Response:
        return Response(int(HTTPStatus.OK), RowResponse.from_item(key, item).to_dict())

    def handle_set(self, body: str | bytes) -> Response:
        """Store a new row described by the request body."""
        try:
            request = decode_set_request(body)
        except (RequestDecodeError, ValidationError) as exc:
            return wrap_error(_decode_error(exc))
        try:
            self._db.set(request.key, request.value, request.ttl)
        except (DBError, StoreError) as exc:
            return wrap_error(StoreError(f"failed to set item in db: {exc}"))
        return _ok()

    def handle_get(self, key: str) -> Response:
        """Return the row stored at ``key``."""
        if not key:
            return wrap_error(url_param_not_found())
        try:
            item = self._db.get(key)
        except (DBError, StoreError) as exc:
            return wrap_error(wrap_db_error(exc))
        return self._row(key, item)

    def handle_remove(self, key: str) -> Response:
        """Delete the row stored at ``key``."""
        if not key:
            return wrap_error(url_param_not_found())
        try:
            self._db.remove(key)
        except (DBError, StoreError) as exc:
            return wrap_error(wrap_db_error(exc))
        return _ok()

    def handle_update(self, key: str, body: str | bytes) -> Response:
        """Replace the value of the row stored at ``key``."""
        if not key:
            return wrap_error(url_param_not_found())
        try:
            request = decode_update_request(body)
        except (RequestDecodeError, ValidationError) as exc:
            return wrap_error(_decode_error(exc))
        try:
            self._db.update(key, request.value, request.ttl)
        except (DBError, StoreError) as exc:
            return wrap_error(wrap_db_error(exc))
        return _ok()

    def handle_push(self, key: str, body: str | bytes) -> Response:
        """Append a string to the list stored at ``key`` and return the row."""
        if not key:
            return wrap_error(url_param_not_found())
        try:
            request = decode_push_request(body)
        except (RequestDecodeError, ValidationError) as exc:
            return wrap_error(_decode_error(exc))
        try:
            item = self._db.push(key, request.value, request.ttl)
        except (DBError, StoreError) as exc:
            return wrap_error(wrap_db_error(exc))
        return self._row(key, item)

    def handle_pop(self, key: str) -> Response:
        """Drop the last element of the list stored at ``key`` and return the row."""
        if not key:
            return wrap_error(url_param_not_found())
        try:
            item = self._db.pop(key)
        except (DBError, StoreError) as exc:
            return wrap_error(wrap_db_error(exc))
        return self._row(key, item)