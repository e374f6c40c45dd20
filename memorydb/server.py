"""Routing of HTTP requests and the servers that listen for them."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from functools import partial
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import unquote, urlsplit

from memorydb.handlers import Handler, Response, wrap_error
from memorydb.logger import LOGGER_NAME
from memorydb.schemas import OKResponse

API_PREFIX = "/api/v1"

_TEXT = "text/plain; charset=utf-8"
_log = logging.getLogger(LOGGER_NAME)

Route = Callable[[str, str, bytes], Response]


def _not_found() -> Response:
    return Response(int(HTTPStatus.NOT_FOUND), "404 page not found\n", _TEXT)


def _not_allowed() -> Response:
    return Response(int(HTTPStatus.METHOD_NOT_ALLOWED), "", _TEXT)


def _route(handler: Handler, method: str, sub_path: str, body: bytes) -> Response:
    segments = sub_path[1:].split("/")
    if len(segments) == 1:
        raw = segments[0]
        key = unquote(raw)
        if method == "POST" and raw == "set":
            return handler.handle_set(body)
        if method == "GET":
            return handler.handle_get(key)
        if method == "DELETE":
            return handler.handle_remove(key)
        if method == "PATCH":
            return handler.handle_update(key, body)
        return _not_allowed()
    if len(segments) == 2 and segments[1] in ("push", "pop"):
        if method != "PATCH":
            return _not_allowed()
        key = unquote(segments[0])
        if segments[1] == "push":
            return handler.handle_push(key, body)
        return handler.handle_pop(key)
    return _not_found()


def dispatch(handler: Handler, method: str, path: str, body: bytes | str = b"") -> Response:
    """Route an API request to the matching handler method."""
    route_path = urlsplit(path).path
    if route_path != API_PREFIX and not route_path.startswith(API_PREFIX + "/"):
        return _not_found()
    sub_path = route_path[len(API_PREFIX):] or "/"
    try:
        return _route(handler, method.upper(), sub_path, body)
    except Exception as exc:
        _log.exception("unhandled error while handling request", extra={"path": route_path})
        return wrap_error(exc)


def dispatch_health(method: str, path: str) -> Response:
    """Answer requests to the health server."""
    if urlsplit(path).path != "/health":
        return _not_found()
    if method.upper() != "GET":
        return _not_allowed()
    _log.info("Health check endpoint hit")
    return Response(int(HTTPStatus.OK), OKResponse(message="ok").to_dict())


def _make_request_handler(route: Route, logger: logging.Logger) -> type[BaseHTTPRequestHandler]:
    class _RequestHandler(BaseHTTPRequestHandler):
        server_version = "memorydb"

        def _handle(self) -> None:
            started = time.monotonic()
            try:
                length = int(self.headers.get("Content-Length") or 0)
            except ValueError:
                length = 0
            body = self.rfile.read(length) if length > 0 else b""
            response = route(self.command, self.path, body)
            payload = response.encode()
            self.send_response(response.status)
            self.send_header("Content-Type", response.content_type)
            self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(payload)
            logger.info(
                "request",
                extra={
                    "method": self.command,
                    "path": self.path,
                    "status": response.status,
                    "bytes": len(payload),
                    "duration_ms": round((time.monotonic() - started) * 1000, 3),
                },
            )

        do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = do_HEAD = do_OPTIONS = _handle

        def log_message(self, format: str, *args: Any) -> None:
            return

    return _RequestHandler


class Server:
    """The API server and the health server, listening on separate sockets.

    Both sockets are bound on construction; passing 0 picks a free one.
    """

    def __init__(
        self,
        logger: logging.Logger | None,
        port: int,
        health_port: int,
        db: Any,
        host: str = "",
    ) -> None:
        self._logger = logger if logger is not None else _log
        handler = Handler(self._logger, db)
        api_route = partial(dispatch, handler)

        def health_route(method: str, path: str, body: bytes) -> Response:
            return dispatch_health(method, path)

        self._srv = ThreadingHTTPServer(
            (host, port), _make_request_handler(api_route, self._logger)
        )
        try:
            self._health_srv = ThreadingHTTPServer(
                (host, health_port), _make_request_handler(health_route, self._logger)
            )
        except OSError:
            self._srv.server_close()
            raise
        self._serving = threading.Event()
        self._health_serving = threading.Event()

    @property
    def port(self) -> int:
        """Number of the socket the API server listens on."""
        return self._srv.server_address[1]

    @property
    def health_port(self) -> int:
        """Number of the socket the health server listens on."""
        return self._health_srv.server_address[1]

    def start(self) -> None:
        """Serve API requests until ``shutdown`` is called."""
        self._logger.info("Starting HTTP server", extra={"port": self.port})
        self._serving.set()
        self._srv.serve_forever()

    def start_health(self) -> None:
        """Serve health checks until ``shutdown`` is called."""
        self._logger.info("Starting health HTTP server", extra={"port": self.health_port})
        self._health_serving.set()
        self._health_srv.serve_forever()

    def shutdown(self) -> None:
        """Stop both servers and close their sockets."""
        errors: list[Exception] = []
        for label, srv, serving in (
            ("main", self._srv, self._serving),
            ("health", self._health_srv, self._health_serving),
        ):
            self._logger.info(
                "Closing HTTP server" if label == "main" else "Closing health HTTP server"
            )
            try:
                if serving.is_set():
                    srv.shutdown()
                srv.server_close()
            except OSError as exc:
                self._logger.error(
                    f"Error closing {label} server", extra={"error": str(exc)}
                )
                errors.append(exc)
        if errors:
            raise OSError(f"shutdown had errors: {errors}")
        self._logger.info("HTTP servers closed successfully")