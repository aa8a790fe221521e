"""
backend/calendar_engine/utils/times.py

Date and time string helpers.

Dates are ISO "YYYY-MM-DD" strings, used verbatim as map keys.
Times are 24-hour "HH:MM" strings; "HH:MM:SS" (SQL TIME) is accepted
and normalised. Times are compared as datetimes on a fixed reference day.
"""

import re
from datetime import date, datetime, time, timedelta

from ..errors import InvalidTimeFormat

# Any day works, only the time of day matters
REFERENCE_DAY = date(2000, 1, 1)

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def normalize_time(value: str | time) -> str:
    """
    "9:00" → "09:00", "09:00:00" → "09:00", time(9, 0) → "09:00".
    """
    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"

    if not isinstance(value, str):
        raise InvalidTimeFormat(value)

    match = _TIME_RE.match(value.strip())
    if not match:
        raise InvalidTimeFormat(value)

    hour, minute = int(match.group(1)), int(match.group(2))
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise InvalidTimeFormat(value)

    return f"{hour:02d}:{minute:02d}"


def time_to_datetime(value: str) -> datetime:
    """Anchor "HH:MM" on the reference day."""
    hhmm = normalize_time(value)
    hour, minute = hhmm.split(":")
    return datetime.combine(REFERENCE_DAY, time(int(hour), int(minute)))


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    dt = time_to_datetime(value)
    return dt.hour * 60 + dt.minute


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    dt = datetime.combine(REFERENCE_DAY, time()) + timedelta(minutes=minutes)
    return dt.strftime("%H:%M")


def date_key(value: date | datetime | str) -> str:
    """Format a date as the "YYYY-MM-DD" map key."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return parse_date(value).isoformat()


def parse_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # "2026-01-15" or "2026-01-15T00:00:00"
    return date.fromisoformat(value[:10])


def days_between(start: date | str, end: date | str) -> list[date]:
    """
    List of dates in [start, end] (inclusive).
    """
    start, end = parse_date(start), parse_date(end)
    if start > end:
        start, end = end, start

    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)

    return days


def month_bounds(value: date | str) -> tuple[date, date]:
    """First and last day of the calendar month containing value."""
    day = parse_date(value)
    first = day.replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return first, next_first - timedelta(days=1)
