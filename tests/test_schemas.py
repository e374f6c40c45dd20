import json
from datetime import timedelta

import pytest

from memorydb.errors import InvalidDataTypeError
from memorydb.item import ZERO_TIME, DataType, Item, new_item
from memorydb.schemas import (
    OKResponse,
    PushItemToSliceRequest,
    RequestDecodeError,
    RowResponse,
    SetRowRequest,
    UpdateRowRequest,
    ValidationError,
    decode_push_request,
    decode_set_request,
    decode_update_request,
)
from memorydb.timefmt import format_timestamp, parse_timestamp


def test_decode_set_string():
    req = decode_set_request('{"key": "testKey", "value": "testValue"}')
    assert req == SetRowRequest(key="testKey", value="testValue", ttl=None)


def test_decode_set_list_and_ttl():
    req = decode_set_request(b'{"key": "k", "value": ["a", "b"], "ttl": "5m"}')
    assert req.value == ["a", "b"]
    assert req.ttl == timedelta(minutes=5)


def test_decode_set_numeric_value_is_decode_error():
    with pytest.raises(RequestDecodeError, match="invalid data type"):
        decode_set_request('{"key": "testKey", "value": 1234}')


def test_decode_set_missing_key():
    with pytest.raises(ValidationError) as info:
        decode_set_request('{"value": "v"}')
    assert str(info.value) == "field 'Key' is required"


def test_decode_set_missing_everything():
    with pytest.raises(ValidationError) as info:
        decode_set_request("{}")
    assert str(info.value) == "field 'Key' is required, field 'Value' is required"


@pytest.mark.parametrize("raw", ["", "{", "[1, 2]", '{"key": 5, "value": "v"}'])
def test_decode_set_malformed(raw):
    with pytest.raises(RequestDecodeError):
        decode_set_request(raw)


@pytest.mark.parametrize("ttl", ['"soon"', "5"])
def test_decode_set_bad_ttl(ttl):
    with pytest.raises(RequestDecodeError):
        decode_set_request('{"key": "k", "value": "v", "ttl": %s}' % ttl)


def test_decode_set_key_case_insensitive():
    req = decode_set_request('{"Key": "k", "VALUE": "v"}')
    assert (req.key, req.value) == ("k", "v")


def test_decode_update():
    req = decode_update_request('{"value": "updatedValue"}')
    assert req == UpdateRowRequest(value="updatedValue")


def test_decode_update_missing_value():
    with pytest.raises(ValidationError, match="field 'Value' is required"):
        decode_update_request('{"ttl": "1s"}')


def test_decode_push():
    req = decode_push_request('{"value": "testNew"}')
    assert req == PushItemToSliceRequest(value="testNew")


def test_decode_push_empty_value():
    with pytest.raises(ValidationError, match="field 'Value' is required"):
        decode_push_request('{"value": ""}')


def test_decode_push_list_rejected():
    with pytest.raises(RequestDecodeError):
        decode_push_request('{"value": ["a"]}')


@pytest.mark.parametrize(
    "req",
    [
        SetRowRequest(key="k", value="v"),
        SetRowRequest(key="k", value=["a", "b"], ttl=timedelta(seconds=90)),
    ],
)
def test_set_request_round_trip(req):
    assert decode_set_request(json.dumps(req.to_dict())) == req


def test_update_and_push_round_trip():
    update = UpdateRowRequest(value=["x"], ttl=timedelta(minutes=10))
    push = PushItemToSliceRequest(value="y", ttl=timedelta(milliseconds=300))
    assert decode_update_request(json.dumps(update.to_dict())) == update
    assert decode_push_request(json.dumps(push.to_dict())) == push


def test_to_dict_omits_unset_ttl():
    assert "ttl" not in SetRowRequest(key="k", value="v").to_dict()


def test_to_dict_rejects_bad_value():
    with pytest.raises(InvalidDataTypeError):
        SetRowRequest(key="k", value=123).to_dict()


def test_ok_response():
    assert OKResponse(message="ok").to_dict() == {"message": "ok"}


def test_row_response_from_item():
    item = new_item(["test", "testNew"])
    row = RowResponse.from_item("testKey", item)
    assert row.key == "testKey"
    assert row.kind == "string_slice"
    assert row.value == ["test", "testNew"]
    data = row.to_dict()
    assert parse_timestamp(data["ttl"]) == item.ttl
    assert parse_timestamp(data["created_at"]) == item.created_at


def test_row_response_bare_item():
    row = RowResponse.from_item("testKey", Item(value="testValue"))
    data = row.to_dict()
    assert data["kind"] == DataType.STRING.label
    assert data["value"] == "testValue"
    assert data["updated_at"] == format_timestamp(ZERO_TIME)