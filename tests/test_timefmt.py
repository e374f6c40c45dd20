from datetime import datetime, timedelta, timezone

import pytest

from memorydb.timefmt import (
    format_duration,
    format_timestamp,
    parse_duration,
    parse_timestamp,
)


def test_parse_simple_durations():
    assert parse_duration("5m") == timedelta(minutes=5)
    assert parse_duration("10m") == timedelta(minutes=10)
    assert parse_duration("0") == timedelta(0)


def test_parse_compound_and_fractional():
    assert parse_duration("2h45m") == timedelta(hours=2, minutes=45)
    assert parse_duration("1.5s") == timedelta(seconds=1, milliseconds=500)
    assert parse_duration("-90s") == -timedelta(seconds=90)
    assert parse_duration("+500ms") == timedelta(milliseconds=500)


@pytest.mark.parametrize("unit", ["us", "\u00b5s", "\u03bcs"])
def test_microsecond_spellings(unit):
    assert parse_duration("7" + unit) == timedelta(microseconds=7)


@pytest.mark.parametrize("text", ["", "abc", "5", "1x", ".s", "-", "5m3", "1..2s"])
def test_invalid_durations(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_format_known_values():
    assert format_duration(timedelta(minutes=5)) == "5m0s"
    assert format_duration(timedelta(hours=1, minutes=30)) == "1h30m0s"
    assert format_duration(timedelta(0)) == "0s"


@pytest.mark.parametrize(
    "value",
    [
        timedelta(minutes=5),
        timedelta(microseconds=1500),
        timedelta(microseconds=3),
        timedelta(milliseconds=250),
        timedelta(seconds=1, milliseconds=500),
        timedelta(hours=72, minutes=3, microseconds=500_000),
        -timedelta(seconds=90),
        timedelta(0),
    ],
)
def test_duration_round_trip(value):
    assert parse_duration(format_duration(value)) == value


def test_format_timestamp_utc():
    value = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert format_timestamp(value) == "2024-01-02T03:04:05Z"


def test_naive_timestamp_treated_as_utc():
    naive = datetime(2024, 1, 2, 3, 4, 5, 120000)
    assert format_timestamp(naive) == format_timestamp(naive.replace(tzinfo=timezone.utc))


@pytest.mark.parametrize(
    "value",
    [
        datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc),
        datetime(2023, 6, 30, 23, 59, 59, 10, tzinfo=timezone(timedelta(hours=2))),
        datetime(2020, 2, 29, 0, 0, 0, tzinfo=timezone(-timedelta(hours=5, minutes=30))),
        datetime(1, 1, 1, tzinfo=timezone.utc),
    ],
)
def test_timestamp_round_trip(value):
    parsed = parse_timestamp(format_timestamp(value))
    assert parsed == value
    assert parsed.utcoffset() == value.utcoffset()


def test_parse_timestamp_truncates_nanoseconds():
    parsed = parse_timestamp("2024-01-02T03:04:05.123456789Z")
    assert parsed.microsecond == 123456
    assert parsed.tzinfo == timezone.utc


@pytest.mark.parametrize("text", ["", "2024-01-02", "2024-01-02T03:04:05", "2024-13-02T03:04:05Z"])
def test_invalid_timestamps(text):
    with pytest.raises(ValueError):
        parse_timestamp(text)