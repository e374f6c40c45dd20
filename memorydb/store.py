"""The in-memory key/value store with expiry and an optional append-only log."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, TextIO

from memorydb.enums import DBCommand, is_valid_command
from memorydb.errors import DataNotFoundError, DBError, KeyExpiredError, StoreError
from memorydb.item import ZERO_TIME, Item, new_item
from memorydb.timefmt import format_timestamp, parse_timestamp

DEFAULT_CLEANUP_INTERVAL = timedelta(minutes=5)
LOG_FILENAME = "test_db.log"

_ITEM_FIELDS = ("value", "ttl", "kind", "created_at", "updated_at")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Operation:
    """One entry of the persistence log."""

    command: DBCommand
    key: str
    time: datetime
    item: Item | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form; the item's fields sit beside the command."""
        data: dict[str, Any] = {
            "command": str(self.command),
            "key": self.key,
            "time": format_timestamp(self.time),
        }
        if self.item is not None:
            data.update(self.item.to_dict())
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Operation:
        """Build an operation from the form produced by ``to_dict``."""
        raw_command = data.get("command", "")
        if not isinstance(raw_command, str) or not is_valid_command(raw_command):
            raise ValueError(f"unknown command {raw_command} in operation log")
        key = data.get("key", "")
        if key is None:
            key = ""
        if not isinstance(key, str):
            raise ValueError(f"invalid key in operation log: {key!r}")
        raw_time = data.get("time")
        if raw_time is None:
            when = ZERO_TIME
        elif isinstance(raw_time, str):
            when = parse_timestamp(raw_time)
        else:
            raise ValueError(f"invalid timestamp: {raw_time!r}")
        item = Item.from_dict(data) if any(name in data for name in _ITEM_FIELDS) else None
        return cls(command=DBCommand(raw_command), key=key, time=when, item=item)


def setup_directory(db_path: str | Path) -> TextIO:
    """Create ``db_path`` if needed and open its log file for appending."""
    directory = Path(db_path)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StoreError(f"failed to create directory for database file: {exc}") from exc
    log_path = directory / LOG_FILENAME
    try:
        return open(log_path, "a+", encoding="utf-8")
    except OSError as exc:
        raise StoreError(f"failed to open database file {log_path}: {exc}") from exc


class MemoryDB:
    """A thread-safe in-memory store of strings and string lists with expiry.

    Expired items are dropped when read and by a background cleanup thread.
    When ``persistence_path`` is given, every change is appended to a log file
    in that directory and the log is replayed on start-up.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        *,
        cleanup_interval: timedelta = DEFAULT_CLEANUP_INTERVAL,
        persistence_path: str | Path | None = None,
    ) -> None:
        self._logger = logger if logger is not None else logging.getLogger("memorydb")
        self._store: dict[str, Item] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._cleanup_interval = cleanup_interval
        self._closed = False

        self.persistence_enabled = persistence_path is not None
        self.db_path = Path(persistence_path) if persistence_path is not None else None
        self._log_file: TextIO | None = None

        if self.db_path is not None:
            self._log_file = setup_directory(self.db_path)
            self._logger.info(
                "loading stored data from database file", extra={"folder": str(self.db_path)}
            )
            try:
                self.load_stored_data()
            except Exception:
                self._log_file.close()
                raise

        self._cleaner = threading.Thread(
            target=self._cleanup_loop, name="memorydb-cleanup", daemon=True
        )
        self._cleaner.start()

    def __enter__(self) -> MemoryDB:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def log_file_path(self) -> Path | None:
        """Path of the persistence log, or None when persistence is off."""
        return None if self.db_path is None else self.db_path / LOG_FILENAME

    def get(self, key: str) -> Item:
        """Return the item stored at ``key``, dropping it if it has expired."""
        with self._lock:
            item = self._store.get(key)
            if item is None:
                raise DataNotFoundError(f"key '{key}' not found in memory database")
            if item.is_expired():
                del self._store[key]
                raise KeyExpiredError()
            return item

    def set(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        """Store ``value`` at ``key``, replacing any previous item."""
        with self._lock:
            try:
                item = new_item(value, ttl)
            except DBError as exc:
                raise StoreError(f"failed to create value for key {key}: {exc}") from exc
            self.log_operation(Operation(DBCommand.SET, key, _now(), item))
            self._store[key] = item

    def update(self, key: str, value: Any, ttl: timedelta | None = None) -> None:
        """Replace the value of an existing item, optionally resetting its expiry."""
        with self._lock:
            item = self._store.get(key)
            if item is None:
                raise StoreError(f"key {key} not found for update")
            try:
                item.update(value, _now(), ttl)
            except DBError as exc:
                raise StoreError(f"failed to update value for key '{key}': {exc}") from exc
            self.log_operation(Operation(DBCommand.UPDATE, key, _now(), item))

    def remove(self, key: str) -> None:
        """Delete the item stored at ``key``."""
        with self._lock:
            if key not in self._store:
                raise StoreError(f"key {key} not found for removal")
            del self._store[key]
            self.log_operation(Operation(DBCommand.REMOVE, key, _now()))

    def push(self, key: str, value: str, ttl: timedelta | None = None) -> Item:
        """Append ``value`` to the list at ``key`` and return the item.

        ``ttl`` is accepted for symmetry with the other writers; the expiry is left as is.
        """
        with self._lock:
            item = self._store.get(key)
            if item is None:
                raise StoreError(f"key {key} not found for push")
            updated_at = _now()
            try:
                item.push(updated_at, value)
            except DBError as exc:
                raise StoreError(f"failed to push values to key {key}: {exc}") from exc
            self.log_operation(
                Operation(DBCommand.PUSH, key, updated_at, Item(value=value, updated_at=updated_at))
            )
            return item

    def pop(self, key: str) -> Item:
        """Remove the last element of the list at ``key`` and return the item."""
        with self._lock:
            item = self._store.get(key)
            if item is None:
                raise StoreError(f"key {key} not found for pop")
            updated_at = _now()
            try:
                item.pop(updated_at)
            except DBError as exc:
                raise StoreError(f"failed to pop item from key {key}: {exc}") from exc
            self.log_operation(
                Operation(DBCommand.POP, key, updated_at, Item(updated_at=updated_at))
            )
            return item

    def peek(self, key: str) -> Item | None:
        """Return the item at ``key`` without checking or enforcing its expiry."""
        with self._lock:
            return self._store.get(key)

    def clean_expired(self) -> None:
        """Drop every expired item."""
        now = _now()
        with self._lock:
            expired = [key for key, item in self._store.items() if item.is_expired(now)]
            for key in expired:
                del self._store[key]

    def log_operation(self, op: Operation) -> None:
        """Append ``op`` to the persistence log; does nothing when persistence is off."""
        if not self.persistence_enabled or self._log_file is None:
            return
        try:
            self._log_file.write(json.dumps(op.to_dict(), ensure_ascii=False) + "\n")
            self._log_file.flush()
        except (OSError, ValueError, TypeError) as exc:
            self._logger.warning(
                "failed to log operation to file",
                extra={"key": op.key, "command": str(op.command), "error": str(exc)},
            )

    def load_stored_data(self) -> None:
        """Replay the persistence log into the store."""
        log_path = self.log_file_path
        if log_path is None:
            return
        with self._lock:
            try:
                if log_path.stat().st_size == 0:
                    return
            except FileNotFoundError:
                return
            except OSError as exc:
                raise StoreError(f"failed to stat database file: {exc}") from exc

            try:
                with open(log_path, encoding="utf-8") as handle:
                    lines = handle.read().splitlines()
            except OSError as exc:
                raise StoreError(f"failed to open database file for reading: {exc}") from exc

            for line in lines:
                if not line.strip():
                    continue
                try:
                    op = Operation.from_dict(json.loads(line))
                except (ValueError, DBError, AttributeError) as exc:
                    raise StoreError(
                        f"failed to decode operation from database file: {exc}"
                    ) from exc
                self._logger.debug(
                    "reconstructing item from operation log",
                    extra={"key": op.key, "command": str(op.command)},
                )
                self._apply(op)

    def _apply(self, op: Operation) -> None:
        key = op.key
        if op.command is DBCommand.REMOVE:
            if key not in self._store:
                raise StoreError(f"item with key {key} not found for removal")
            del self._store[key]
            return

        if op.item is None:
            raise StoreError(f"operation {op.command} for key {key} carries no item")

        if op.command is DBCommand.SET:
            self._store[key] = op.item
            return

        item = self._store.get(key)
        if item is None:
            raise StoreError(f"item with key {key} not found for {op.command}")
        try:
            if op.command is DBCommand.UPDATE:
                item.update(op.item.value, op.item.updated_at)
            elif op.command is DBCommand.PUSH:
                if not isinstance(op.item.value, str):
                    raise StoreError(f"invalid value to push for key {key}")
                item.push(op.item.updated_at, op.item.value)
            else:
                item.pop(op.item.updated_at)
        except DBError as exc:
            raise StoreError(f"failed to {op.command} item with key {key}: {exc}") from exc
        if op.item.ttl is not None:
            item.ttl = op.item.ttl

    def close(self) -> None:
        """Stop the cleanup thread, empty the store and close the log file."""
        self._stop.set()
        with self._lock:
            self._store = {}
            if self._log_file is not None and not self._log_file.closed:
                self._log_file.close()
            self._closed = True
        if self._cleaner.is_alive() and self._cleaner is not threading.current_thread():
            self._cleaner.join(timeout=1)

    def _cleanup_loop(self) -> None:
        interval = max(self._cleanup_interval.total_seconds(), 0.001)
        while not self._stop.wait(interval):
            self.clean_expired()