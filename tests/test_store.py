import json
import time
from datetime import datetime, timedelta, timezone

import pytest

from memorydb.enums import DBCommand
from memorydb.errors import DataNotFoundError, KeyExpiredError, StoreError
from memorydb.item import DataType, Item
from memorydb.store import LOG_FILENAME, MemoryDB, Operation, setup_directory


@pytest.fixture
def db():
    store = MemoryDB()
    yield store
    store.close()


@pytest.fixture
def persistent(tmp_path):
    path = tmp_path / ".db"
    store = MemoryDB(persistence_path=path)
    yield store
    store.close()


def _now():
    return datetime.now(timezone.utc)


@pytest.mark.parametrize(
    "key, value, expected",
    [("str", "hello", "hello"), ("list", ["a", "b"], ["a", "b"])],
)
def test_set_and_get(db, key, value, expected):
    db.set(key, value)
    assert db.get(key).value == expected


def test_set_rejects_bad_type(db):
    with pytest.raises(StoreError):
        db.set("bad", 123)
    assert db.peek("bad") is None


@pytest.mark.parametrize(
    "key, initial, new, expected",
    [("k1", "a", "b", "b"), ("k2", ["x"], ["y"], ["y"])],
)
def test_update(db, key, initial, new, expected):
    db.set(key, initial)
    db.update(key, new)
    assert db.get(key).value == expected


def test_update_rejects_bad_type(db):
    db.set("k3", "init")
    with pytest.raises(StoreError):
        db.update("k3", 999)
    assert db.get("k3").value == "init"


def test_update_missing_key(db):
    with pytest.raises(StoreError, match="not found for update"):
        db.update("nope", "x")


def test_update_changes_kind(db):
    db.set("k", "a")
    db.update("k", ["a", "b"])
    assert db.get("k").kind is DataType.STRING_SLICE


def test_remove(db):
    db.set("r1", "toRemove")
    db.remove("r1")
    with pytest.raises(DataNotFoundError):
        db.get("r1")


def test_remove_missing(db):
    with pytest.raises(StoreError, match="not found for removal"):
        db.remove("r2")


def test_get_missing_message(db):
    with pytest.raises(DataNotFoundError) as info:
        db.get("ghost")
    assert str(info.value) == "key 'ghost' not found in memory database"


def test_push(db):
    db.set("list", ["one"])
    item = db.push("list", "two")
    assert item.value == ["one", "two"]


def test_push_missing(db):
    with pytest.raises(StoreError):
        db.push("missing", "x")


def test_push_to_string_fails(db):
    db.set("s", "text")
    with pytest.raises(StoreError):
        db.push("s", "x")
    assert db.get("s").value == "text"


def test_pop(db):
    db.set("list", ["a", "b"])
    item = db.pop("list")
    assert item.value == ["a"]


def test_pop_missing(db):
    with pytest.raises(StoreError):
        db.pop("missing")


def test_pop_empty_list(db):
    db.set("list", [])
    with pytest.raises(StoreError) as info:
        db.pop("list")
    assert isinstance(info.value.__cause__, DataNotFoundError)


def test_expiration_short_ttl(db):
    db.set("temp1", "short", timedelta(milliseconds=50))
    time.sleep(0.15)
    with pytest.raises(KeyExpiredError):
        db.get("temp1")
    assert db.peek("temp1") is None


def test_expiration_long_ttl(db):
    db.set("temp2", "long", timedelta(seconds=5))
    time.sleep(0.05)
    assert db.get("temp2").value == "long"


def test_clean_expired(db):
    db.set("old", "x", timedelta(seconds=-1))
    db.set("fresh", "y")
    db.clean_expired()
    assert db.peek("old") is None
    assert db.peek("fresh").value == "y"


def test_cleanup_thread_removes_expired():
    store = MemoryDB(cleanup_interval=timedelta(milliseconds=10))
    try:
        store.set("old", "x", timedelta(seconds=-1))
        deadline = time.monotonic() + 2
        while store.peek("old") is not None and time.monotonic() < deadline:
            time.sleep(0.01)
        assert store.peek("old") is None
    finally:
        store.close()


def test_close_empties_store():
    store = MemoryDB()
    store.set("k", "v")
    store.close()
    assert store.peek("k") is None


def test_many_keys(db):
    for i in range(1000):
        db.set(f"key_{i}", f"value_{i}")
    assert all(db.get(f"key_{i}").value == f"value_{i}" for i in range(1000))
    for i in range(1000):
        db.remove(f"key_{i}")
    assert all(db.peek(f"key_{i}") is None for i in range(1000))


def test_setup_directory(tmp_path):
    path = tmp_path / ".db"
    handle = setup_directory(path)
    try:
        assert (path / LOG_FILENAME).is_file()
        assert handle.name == str(path / LOG_FILENAME)
    finally:
        handle.close()


def test_operation_round_trip():
    now = _now()
    item = Item(value=["a", "b"], kind=DataType.STRING_SLICE, ttl=now, created_at=now, updated_at=now)
    op = Operation(DBCommand.SET, "k", now, item)
    restored = Operation.from_dict(json.loads(json.dumps(op.to_dict())))
    assert restored == op


def test_operation_remove_has_no_item():
    op = Operation(DBCommand.REMOVE, "k", _now())
    data = op.to_dict()
    assert "value" not in data
    assert Operation.from_dict(data).item is None


def test_operation_unknown_command():
    with pytest.raises(ValueError, match="unknown command"):
        Operation.from_dict({"command": "explode", "key": "k"})


def test_log_operation_writes_file(persistent):
    item = Item(value="testValue", kind=DataType.STRING, updated_at=_now(), created_at=_now())
    persistent.log_operation(Operation(DBCommand.SET, "testKey", _now(), item))
    lines = persistent.log_file_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["command"] == "set"
    assert entry["key"] == "testKey"
    assert entry["value"] == "testValue"


def test_load_stored_data_set_string(persistent):
    item = Item(value="testValue", kind=DataType.STRING, updated_at=_now(), created_at=_now())
    persistent.log_operation(Operation(DBCommand.SET, "testKey", _now(), item))
    persistent.load_stored_data()
    assert persistent.peek("testKey").value == "testValue"


def test_load_stored_data_set_slice(persistent):
    item = Item(
        value=["value1", "value2"], kind=DataType.STRING_SLICE, updated_at=_now(), created_at=_now()
    )
    persistent.log_operation(Operation(DBCommand.SET, "testSliceKey", _now(), item))
    persistent.load_stored_data()
    assert persistent.peek("testSliceKey").value == ["value1", "value2"]


def test_load_stored_data_remove(persistent):
    item = Item(value="toBeRemoved", kind=DataType.STRING, updated_at=_now(), created_at=_now())
    persistent.log_operation(Operation(DBCommand.SET, "testRemoveKey", _now(), item))
    persistent.log_operation(Operation(DBCommand.REMOVE, "testRemoveKey", _now()))
    persistent.load_stored_data()
    assert persistent.peek("testRemoveKey") is None


def test_load_stored_data_push(persistent):
    item = Item(
        value=["initialValue"], kind=DataType.STRING_SLICE, updated_at=_now(), created_at=_now()
    )
    persistent.log_operation(Operation(DBCommand.SET, "testPushKey", _now(), item))
    push_item = Item(value="newValue1", updated_at=_now())
    persistent.log_operation(Operation(DBCommand.PUSH, "testPushKey", _now(), push_item))
    persistent.load_stored_data()
    assert persistent.peek("testPushKey").value == ["initialValue", "newValue1"]


def test_reopen_replays_log(tmp_path):
    path = tmp_path / ".db"
    with MemoryDB(persistence_path=path) as first:
        first.set("s", "a")
        first.set("l", ["x"])
        first.push("l", "y")
        first.push("l", "z")
        first.pop("l")
        first.update("s", "b")
        first.set("gone", "v")
        first.remove("gone")

    with MemoryDB(persistence_path=path) as second:
        assert second.get("s").value == "b"
        assert second.get("l").value == ["x", "y"]
        assert second.peek("gone") is None


def test_load_rejects_unknown_command(tmp_path):
    path = tmp_path / ".db"
    path.mkdir()
    (path / LOG_FILENAME).write_text('{"command": "explode", "key": "k"}\n', encoding="utf-8")
    with pytest.raises(StoreError, match="unknown command"):
        MemoryDB(persistence_path=path)


def test_load_rejects_corrupt_json(tmp_path):
    path = tmp_path / ".db"
    path.mkdir()
    (path / LOG_FILENAME).write_text("{not json\n", encoding="utf-8")
    with pytest.raises(StoreError, match="failed to decode operation"):
        MemoryDB(persistence_path=path)


def test_load_rejects_update_of_missing_key(tmp_path):
    path = tmp_path / ".db"
    path.mkdir()
    line = json.dumps({"command": "update", "key": "k", "value": "v"})
    (path / LOG_FILENAME).write_text(line + "\n", encoding="utf-8")
    with pytest.raises(StoreError, match="not found"):
        MemoryDB(persistence_path=path)


def test_no_log_without_persistence(db):
    db.set("k", "v")
    assert db.log_file_path is None
    assert db.get("k").value == "v"