# src/cpt/core/age.py
"""Retention age expressions.

An age expression selects a cutoff instant for retention cleanup:

- ``35d``: relative, whole days (converted to hours)
- ``24h``, ``1.5h``, ``30m1h``: relative duration ending in an hour component
- ``2020-04-25 11:40:40.78``: absolute timestamp, up to nanosecond fraction

Relative ages are subtracted from the current wall clock. Engine timestamps
are stored without time zone, so cutoffs are naive local datetimes.
"""

import re
from datetime import datetime, timedelta
from decimal import Decimal

from cpt.contracts.errors import AgeFormatError

_DAYS_PATTERN = re.compile(r"^([+-]?[0-9]+)d$")

# One duration component: decimal number with optional fraction, then a unit
_DURATION_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?(ns|us|µs|μs|ms|s|m|h)")

_NANOS_PER_UNIT: dict[str, int] = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 60 * 60 * 1_000_000_000,
}

_TIMESTAMP_PATTERN = re.compile(r"^([0-9]{4})-([0-9]{2})-([0-9]{2}) ([0-9]{2}):([0-9]{2}):([0-9]{2})(?:\.([0-9]{1,9}))?$")


def _duration_nanos(text: str) -> int:
    """Parse a duration into signed nanoseconds."""
    if not text:
        raise AgeFormatError("Invalid duration: empty")

    body = text
    negative = False
    if body[0] in "+-":
        negative = body[0] == "-"
        body = body[1:]

    if body == "0":
        return 0
    if not body:
        raise AgeFormatError(f"Invalid duration: {text}")

    total_nanos = Decimal(0)
    pos = 0
    while pos < len(body):
        match = _DURATION_COMPONENT.match(body, pos)
        if match is None:
            raise AgeFormatError(f"Invalid duration: {text}")
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise AgeFormatError(f"Invalid duration: {text}")
        number = Decimal(f"{whole or '0'}.{fraction or '0'}")
        total_nanos += number * _NANOS_PER_UNIT[unit]
        pos = match.end()

    nanos = int(total_nanos)
    return -nanos if negative else nanos


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``24h``, ``1.5h`` or ``1h30m``.

    Accepts an optional leading sign followed by one or more
    ``<number><unit>`` components. A bare ``0`` is also accepted.
    Sub-microsecond precision is truncated.

    Raises:
        AgeFormatError: If the text is not a valid duration.
    """
    nanos = _duration_nanos(text)
    sign = -1 if nanos < 0 else 1
    try:
        return sign * timedelta(microseconds=abs(nanos) // 1_000)
    except OverflowError as e:
        raise AgeFormatError(f"Duration out of range: {text}") from e


def parse_timestamp(text: str) -> datetime:
    """Parse an absolute ``YYYY-MM-DD HH:MM:SS[.fffffffff]`` timestamp.

    Fractions beyond microseconds are truncated.

    Raises:
        AgeFormatError: If the text does not match the format or is not a real date.
    """
    match = _TIMESTAMP_PATTERN.fullmatch(text)
    if match is None:
        raise AgeFormatError(f"Invalid timestamp: {text}")
    year, month, day, hour, minute, second, fraction = match.groups()
    microsecond = int((fraction or "0").ljust(9, "0")[:6])
    try:
        return datetime(int(year), int(month), int(day), int(hour), int(minute), int(second), microsecond)
    except ValueError as e:
        raise AgeFormatError(f"Invalid timestamp: {text}: {e}") from e


def parse_age(age: str, *, as_of: datetime | None = None) -> datetime:
    """Convert a retention age expression into an absolute cutoff instant.

    Args:
        age: ``<int>d``, a duration ending in ``h``, or an absolute timestamp
        as_of: Reference instant for relative ages (defaults to now)

    Returns:
        Cutoff instant; records older than it are eligible for cleanup.

    Raises:
        AgeFormatError: If the expression is malformed or the duration is not positive.
    """
    duration_text: str | None = None

    if age.endswith("d"):
        match = _DAYS_PATTERN.fullmatch(age)
        if match is None:
            raise AgeFormatError(f"Invalid day format {age}")
        duration_text = f"{int(match.group(1)) * 24}h"
    elif age.endswith("h"):
        duration_text = age

    if duration_text is None:
        return parse_timestamp(age)

    if _duration_nanos(duration_text) <= 0:
        raise AgeFormatError(f"Invalid age value {age}")
    duration = parse_duration(duration_text)

    if as_of is None:
        as_of = datetime.now()
    try:
        return as_of - duration
    except OverflowError as e:
        raise AgeFormatError(f"Invalid age value {age}: out of range") from e
