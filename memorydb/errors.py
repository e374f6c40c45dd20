"""Error types raised by the database and returned by the HTTP API."""

from __future__ import annotations

from dataclasses import dataclass, replace
from http import HTTPStatus


@dataclass
class ApiError(Exception):
    """An error that is reported to an API client.

    ``sys_message`` is meant for logs only and is never sent to the client.
    """

    code: str
    message: str
    http_status: int
    sys_message: str = ""

    def __post_init__(self) -> None:
        if not self.sys_message:
            self.sys_message = self.message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def with_message(self, message: str, sys_message: str | None = None) -> ApiError:
        """Return a copy carrying a different message."""
        return replace(
            self,
            message=message,
            sys_message=message if sys_message is None else sys_message,
        )

    def to_dict(self) -> dict[str, str]:
        """Return the fields sent to the client."""
        return {"code": self.code, "message": self.message}


def _api_error(code: str, default: str, status: HTTPStatus, message: str | None) -> ApiError:
    return ApiError(code=code, message=default if message is None else message, http_status=int(status))


def internal_server_error(message: str | None = None) -> ApiError:
    return _api_error(
        "internal_server_error", "internal server error", HTTPStatus.INTERNAL_SERVER_ERROR, message
    )


def invalid_json(message: str | None = None) -> ApiError:
    return _api_error("invalid_json", "invalid JSON", HTTPStatus.BAD_REQUEST, message)


def invalid_request(message: str | None = None) -> ApiError:
    return _api_error("invalid_request", "invalid request", HTTPStatus.BAD_REQUEST, message)


def item_not_found(message: str | None = None) -> ApiError:
    return _api_error("item_not_found", "item not found", HTTPStatus.NOT_FOUND, message)


def url_param_not_found() -> ApiError:
    return _api_error(
        "url_param_not_found", "URL parameter not found", HTTPStatus.BAD_REQUEST, None
    )


def key_has_expired(message: str | None = None) -> ApiError:
    return _api_error("key_has_expired", "key has expired", HTTPStatus.GONE, message)


class DBError(Exception):
    """Base class for well-known database errors."""

    default_message = "database error"
    default_sys_message = "database error"

    def __init__(self, message: str | None = None, sys_message: str | None = None) -> None:
        if message is None:
            self.message = self.default_message
            self.sys_message = self.default_sys_message if sys_message is None else sys_message
        else:
            self.message = message
            self.sys_message = message if sys_message is None else sys_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class InvalidDataTypeError(DBError):
    """The value is neither a string nor a list of strings."""

    default_message = "invalid data type"
    default_sys_message = "data type must be string or []string"


class DataNotFoundError(DBError):
    """The requested data does not exist."""

    default_message = "item not found"
    default_sys_message = "the requested data does not exist in the database"


class KeyExpiredError(DBError):
    """The requested key has outlived its TTL."""

    default_message = "key has expired"
    default_sys_message = (
        "the requested key has expired and is no longer available in the database"
    )


class StoreError(Exception):
    """A store operation failed for a reason other than a well-known database error."""