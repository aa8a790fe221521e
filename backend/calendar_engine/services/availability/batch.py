# backend/calendar_engine/services/availability/batch.py
"""
Month batch processing.

Store rows for a whole range are fetched once and turned into two lookup
maps (date → exception, date → slots); every day of the range is then
resolved from the maps without further round-trips.

The returned patch is merged into the availability map by date, so
batches for disjoint ranges never truncate each other.
"""

from collections.abc import Iterable
from datetime import date

from ...schemas.availability import (
    AvailabilityException,
    AvailabilitySettings,
    DayAvailability,
    TimeSlot,
    WeeklyTemplate,
)
from ...schemas.store import ExceptionRow, TimeSlotRow
from ...utils.times import date_key, time_to_datetime
from .resolver import resolve_day


def build_exceptions_map(rows: Iterable[ExceptionRow]) -> dict[str, AvailabilityException]:
    """Exceptions by date. A later row for the same date wins (upsert)."""
    result: dict[str, AvailabilityException] = {}
    for row in rows:
        result[row.date] = AvailabilityException(
            date=row.date,
            is_available=row.is_available,
            reason=row.reason,
        )
    return result


def build_slots_map(rows: Iterable[TimeSlotRow]) -> dict[str, list[TimeSlot]]:
    """Persisted slots by date, ordered by start time."""
    result: dict[str, list[TimeSlot]] = {}
    for row in rows:
        slot = TimeSlot(
            id=row.id or f"{row.date}-{row.start_time}-{row.end_time}",
            start_time=row.start_time,
            end_time=row.end_time,
            is_available=row.is_available,
            is_booked=row.is_booked,
        )
        result.setdefault(row.date, []).append(slot)

    for slots in result.values():
        slots.sort(key=lambda s: time_to_datetime(s.start_time))

    return result


def process_days(
    days: Iterable[date | str],
    template: WeeklyTemplate,
    settings: AvailabilitySettings,
    exceptions_map: dict[str, AvailabilityException],
    slots_map: dict[str, list[TimeSlot]],
) -> dict[str, DayAvailability]:
    """
    Resolve every day from prefetched maps.

    Returns:
        Patch of date → DayAvailability.
    """
    patch: dict[str, DayAvailability] = {}

    for day in days:
        key = date_key(day)
        patch[key] = resolve_day(
            key,
            template,
            settings,
            exceptions_map.get(key),
            slots_map.get(key, []),
        )

    return patch
