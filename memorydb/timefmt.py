"""Duration and timestamp text formats used on the wire and in the log file."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

_NS_PER_US = 1_000
_NS_PER_MS = 1_000_000
_NS_PER_S = 1_000_000_000
_NS_PER_MIN = 60 * _NS_PER_S

_UNITS = {
    "ns": 1,
    "us": _NS_PER_US,
    "\u00b5s": _NS_PER_US,
    "\u03bcs": _NS_PER_US,
    "ms": _NS_PER_MS,
    "s": _NS_PER_S,
    "m": _NS_PER_MIN,
    "h": 60 * _NS_PER_MIN,
}

_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")

_TIMESTAMP = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))"
)


def _invalid(text: str, reason: str = "invalid duration") -> ValueError:
    return ValueError(f'time: {reason} "{text}"')


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"300ms"``, ``"-1.5h"`` or ``"2h45m"``."""
    rest = text
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise _invalid(text)

    total_ns = 0
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        whole, frac, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not frac:
            raise _invalid(text)
        if not unit:
            raise _invalid(text, "missing unit in duration")
        if unit not in _UNITS:
            raise _invalid(text, f'unknown unit "{unit}" in duration')
        scale = _UNITS[unit]
        total_ns += int(whole or "0") * scale
        if frac:
            total_ns += int(frac) * scale // 10 ** len(frac)
        pos = match.end()

    result = timedelta(microseconds=total_ns // _NS_PER_US)
    return -result if negative else result


def _to_ns(value: timedelta) -> int:
    return (value.days * 86_400 + value.seconds) * _NS_PER_S + value.microseconds * _NS_PER_US


def _with_fraction(amount: int, precision: int) -> str:
    scale = 10**precision
    whole, frac = divmod(amount, scale)
    if not frac:
        return str(whole)
    digits = str(frac).zfill(precision).rstrip("0")
    return f"{whole}.{digits}"


def format_duration(value: timedelta) -> str:
    """Format a duration the way ``parse_duration`` reads it, e.g. ``"1h2m0.5s"``."""
    ns = _to_ns(value)
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns == 0:
        return "0s"
    if ns < _NS_PER_S:
        if ns < _NS_PER_US:
            return f"{sign}{ns}ns"
        if ns < _NS_PER_MS:
            return f"{sign}{_with_fraction(ns, 3)}\u00b5s"
        return f"{sign}{_with_fraction(ns, 6)}ms"

    text = f"{_with_fraction(ns % _NS_PER_MIN, 9)}s"
    minutes = ns // _NS_PER_MIN
    if minutes:
        text = f"{minutes % 60}m{text}"
        hours = minutes // 60
        if hours:
            text = f"{hours}h{text}"
    return sign + text


def format_timestamp(value: datetime) -> str:
    """Format an RFC 3339 timestamp; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset() or timedelta(0)
    if not offset:
        return text + "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def parse_timestamp(text: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime.

    Fractions finer than a microsecond are truncated.
    """
    match = _TIMESTAMP.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid timestamp: {text!r}")
    year, month, day, hour, minute, second, frac, zulu, sign, off_h, off_m = match.groups()
    if zulu:
        tz = timezone.utc
    else:
        offset = timedelta(hours=int(off_h), minutes=int(off_m))
        tz = timezone(-offset if sign == "-" else offset)
    microsecond = int((frac or "").ljust(6, "0")[:6])
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), microsecond, tzinfo=tz
    )