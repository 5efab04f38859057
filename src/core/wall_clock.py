"""Wall-clock time helpers.

Appointment times are written in the business timezone and must be shown with
the exact hour that was entered, whatever timezone the viewer is in. Every
value is therefore reduced to a naive datetime holding its literal written
components; offsets are dropped, never converted.
"""

import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

_WALL_CLOCK_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2})(?::(\d{2}))?"
)


def as_wall_clock(value: datetime | str) -> datetime:
    """Reduce a timestamp to its literal year/month/day/hour/minute/second.

    Strings such as ``2026-10-20T10:00:00-03:00`` or ``2026-10-20T10:00:00.000Z``
    both yield ``datetime(2026, 10, 20, 10, 0, 0)``. Aware datetimes keep their
    components and lose the tzinfo.

    Args:
        value: ISO-8601 string or datetime.

    Returns:
        datetime: Naive wall-clock datetime with seconds precision.

    Raises:
        ValueError: If a string cannot be read as a timestamp.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None, microsecond=0)

    match = _WALL_CLOCK_PATTERN.match(value.strip())
    if match:
        year, month, day, hour, minute, second = match.groups()
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour),
            int(minute),
            int(second or 0),
        )

    # Date-only or otherwise unusual strings
    return datetime.fromisoformat(value.strip()).replace(tzinfo=None, microsecond=0)


def truncate_to_minute(value: datetime) -> datetime:
    """Drop seconds and microseconds."""
    return value.replace(second=0, microsecond=0)


def start_of_day(value: datetime) -> datetime:
    """Midnight of the calendar day ``value`` falls on."""
    return datetime.combine(value.date(), time.min)


def day_range(first: date, last: date) -> list[date]:
    """Every calendar day from ``first`` to ``last`` inclusive."""
    days = []
    current = first
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def business_now(timezone_name: str) -> datetime:
    """Current wall-clock time in the business timezone, as a naive datetime."""
    return datetime.now(ZoneInfo(timezone_name)).replace(tzinfo=None)
