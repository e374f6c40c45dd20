# memorydb

An in-memory key-value store served over HTTP. Each key holds either a
string or a list of strings, every entry expires after a time-to-live, and
the store can optionally be rebuilt at start-up from an append-only
operation log on disk. A small Python client for the HTTP API is included,
and the store can also be used directly as a Python object.

No third-party libraries are needed; everything runs on the standard library.

## Installing

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Running the server

```
memorydb
```

The command takes no options (`memorydb --help` prints a short description).
It starts two HTTP servers on all interfaces: the main API and a separate
health server, so that health checks never compete with regular traffic.
Stop it with Ctrl+C or SIGTERM; the store is closed and both servers shut
down. The exit status is 0 after a clean shutdown and 1 when the
configuration, the store or a server could not be set up.

### Configuration

All settings come from environment variables. A variable that is unset or
empty keeps its default.

| Variable                   | Default            | Meaning                                              |
|----------------------------|--------------------|------------------------------------------------------|
| `VERBOSE`                  | `info`             | Log level, `info` or `debug`                         |
| `API_VERSION`              | `v1`               | Read and checked, but not used for routing (see below) |
| `PORT`                     | `8080`             | Port of the main API                                 |
| `HEALTH_PORT`              | `8081`             | Port of the health server                            |
| `DEFAULT_TTL`              | `5m`               | Read and checked, but not applied (see below)        |
| `DEFAULT_CLEANUP_INTERVAL` | `10m`              | How often expired entries are swept from the store   |
| `PERSISTENCE_ENABLED`      | `false`            | Write every change to an operation log and replay it |
| `DB_PATH`                  | `/tmp/memorydb.db` | Directory holding the operation log                  |

Durations use the notation `300ms`, `1.5s`, `10m`, `1h30m`; a bare number is
taken as nanoseconds. `PERSISTENCE_ENABLED` accepts `1`, `t`, `true`, `TRUE`,
`True` and `0`, `f`, `false`, `FALSE`, `False`. An unknown `VERBOSE` level or
a value that cannot be parsed stops start-up with an error.

Logs are written to standard output as one JSON object per line, with
`time`, `level`, `msg` and any extra fields.

Example:

```
PORT=9090 HEALTH_PORT=9091 VERBOSE=debug PERSISTENCE_ENABLED=true DB_PATH=./data memorydb
```

### Persistence

With persistence enabled, `DB_PATH` is created if it is missing, and every
`set`, `update`, `remove`, `push` and `pop` is appended as a JSON line to
`test_db.log` inside it. At start-up the log is replayed in order to rebuild
the store; a log that cannot be replayed stops start-up.

## HTTP API

Every route of the main API lives under `/api/v1`. Request and response
bodies are JSON.

| Method   | Path                  | Body                                      | Result                 |
|----------|-----------------------|-------------------------------------------|------------------------|
| `POST`   | `/api/v1/set`         | `{"key": "k", "value": ..., "ttl": "1m"}` | `{"message": "ok"}`    |
| `GET`    | `/api/v1/{key}`       |                                           | the row                |
| `DELETE` | `/api/v1/{key}`       |                                           | `{"message": "ok"}`    |
| `PATCH`  | `/api/v1/{key}`       | `{"value": ..., "ttl": "1m"}`             | `{"message": "ok"}`    |
| `PATCH`  | `/api/v1/{key}/push`  | `{"value": "x", "ttl": "1m"}`             | the row after the push |
| `PATCH`  | `/api/v1/{key}/pop`   |                                           | the row after the pop  |

`value` is a string or a list of strings; `ttl` is optional. Without one, an
entry expires five minutes after it is set. An update with a `ttl` resets the
expiry to now plus that duration. `push` appends a string to a list value
(its `ttl` is accepted but leaves the expiry unchanged), and `pop` drops the
last element of a list value. A read of an expired key removes it.

A row looks like this:

```json
{
  "key": "fruits",
  "kind": "string_slice",
  "value": ["apple", "pear"],
  "ttl": "2025-01-01T12:05:00Z",
  "created_at": "2025-01-01T12:00:00Z",
  "updated_at": "2025-01-01T12:00:30Z"
}
```

`kind` is `string` or `string_slice`.

Errors come back as `{"code": ..., "message": ...}` with a matching status:

| Code                    | Status | When                                                        |
|-------------------------|--------|-------------------------------------------------------------|
| `invalid_json`          | 400    | The body is not JSON of the expected shape, or `value` is of another type |
| `invalid_request`       | 400    | A required field (`key`, `value`) is missing or empty       |
| `url_param_not_found`   | 400    | The key in the path is empty                                |
| `item_not_found`        | 404    | `GET` of a key that does not exist                          |
| `key_has_expired`       | 410    | `GET` of a key whose time-to-live has passed                |
| `internal_server_error` | 500    | Any other failure, e.g. update, remove, push or pop of a missing key, or push to a string value |

An unknown path answers 404 with a plain-text body, and a known path with
the wrong method answers 405.

The health server answers `GET /health` with `{"message": "ok"}`.

## Python client

`memorydb.client.ApiClient` talks to a running server:

```python
from datetime import timedelta

from memorydb.client import ApiClient, ClientError

client = ApiClient("http://127.0.0.1:8080", "v1")

client.set("greeting", "hello")
print(client.get("greeting").value)          # hello

client.set("fruits", ["apple"], timedelta(minutes=1))
client.push("fruits", "pear")
print(client.get("fruits").value)            # ['apple', 'pear']

client.pop("fruits")
client.update("greeting", "hi")
client.remove("greeting")

try:
    client.get("greeting")
except ClientError as err:
    print(err)
```

`ApiClient(url, version="v1", timeout=10.0)` sends requests to
`{url}/api/{version}/...`. `get`, `push` and `pop` return an `ApiResponse`
with the row's `key`, `kind`, `value`, `ttl`, `created_at` and `updated_at`;
`set`, `update` and `remove` return an `OKResponse` whose `message` is
`"ok"`. Any status other than 200, a connection failure or a body that
cannot be decoded raises `ClientError`.

## Using the store directly

`memorydb.store.MemoryDB` is the store itself and is safe to share between
threads:

```python
from datetime import timedelta

from memorydb.store import MemoryDB

with MemoryDB(cleanup_interval=timedelta(minutes=1)) as db:
    db.set("fruits", ["apple"], timedelta(seconds=30))
    db.push("fruits", "pear")
    print(db.get("fruits").value)   # ['apple', 'pear']
```

Pass `persistence_path="./data"` to write and replay the operation log.
`get` raises `memorydb.errors.DataNotFoundError` or `KeyExpiredError`; the
other operations raise `memorydb.errors.StoreError`. `peek` returns an item
without checking its expiry, and `clean_expired` sweeps expired items at
once.

## What it does not do

- Routes are always served under `/api/v1`; `API_VERSION` does not change them.
- `DEFAULT_TTL` is not applied: entries set without a `ttl` always expire
  after five minutes.
- No API documentation page is served.
- Data lives in memory only; the operation log is the sole form of storage,
  and it is never compacted.