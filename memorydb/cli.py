"""Command that runs the database server until it is interrupted."""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from collections.abc import Callable, Sequence
from logging import Logger

from memorydb.config import ConfigError, load_config
from memorydb.errors import StoreError
from memorydb.logger import new_logger
from memorydb.server import Server
from memorydb.store import MemoryDB

VERSION = "1.0.0"


def _serve(target: Callable[[], None], label: str, logger: Logger, stop: threading.Event) -> None:
    try:
        target()
    except Exception as exc:
        logger.error(f"Failed to start {label}", extra={"error": str(exc)})
        stop.set()


def _run(stop: threading.Event) -> int:
    try:
        configuration = load_config()
    except ConfigError as exc:
        print(f"Failed to load configuration: {exc}", file=sys.stderr)
        return 1

    logger = new_logger(configuration.verbose)
    logger.info("Starting MemoryDB application", extra={"version": VERSION})

    persistence_path = None
    if configuration.persistence_enabled:
        logger.info("Persistence is enabled, setting up database with persistence options")
        persistence_path = configuration.db_path
    try:
        db = MemoryDB(
            logger,
            cleanup_interval=configuration.default_cleanup_interval,
            persistence_path=persistence_path,
        )
    except (StoreError, OSError) as exc:
        logger.error("Failed to set up database", extra={"error": str(exc)})
        return 1

    try:
        server = Server(logger, configuration.port, configuration.health_port, db)
    except OSError as exc:
        logger.error("Failed to start HTTP server", extra={"error": str(exc)})
        db.close()
        return 1

    for target, label in (
        (server.start_health, "health HTTP server"),
        (server.start, "HTTP server"),
    ):
        threading.Thread(
            target=_serve, args=(target, label, logger, stop), daemon=True
        ).start()

    while not stop.wait(0.2):
        pass

    logger.info("Received shutdown signal, shutting down...")
    db.close()
    try:
        server.shutdown()
    except OSError as exc:
        logger.error("Error shutting down HTTP server", extra={"error": str(exc)})
        return 1
    logger.info("Shut down complete, exiting application")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the server until SIGINT or SIGTERM; return the exit status."""
    parser = argparse.ArgumentParser(
        prog="memorydb",
        description="Run the in-memory database HTTP server, configured from the environment.",
    )
    parser.parse_args(argv)

    stop = threading.Event()

    def on_signal(signum: int, frame: object) -> None:
        stop.set()

    previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        return _run(stop)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)


if __name__ == "__main__":
    sys.exit(main())