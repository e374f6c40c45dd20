"""In-memory key-value store with expiring keys, list values, an HTTP API, a client and an operation log."""

__version__ = "1.0.0"