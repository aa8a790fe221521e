# backend/calendar_engine/services/availability/resolver.py
"""
Day resolution.

Merges, for one date:
✓ weekly template entry for the weekday
✓ availability exception for the date (if any)
✓ persisted time slots for the date

Decision order:
  1. exception, not available → closed, slots masked (not deleted)
  2. exception, available     → persisted slots, else generated from the
                                weekday hours, else working with no slots
  3. no exception             → template decides; persisted slots always
                                win over generated ones
"""

import logging
from datetime import date

from ...schemas.availability import (
    AvailabilityException,
    AvailabilitySettings,
    DayAvailability,
    TimeSlot,
    WeeklyTemplate,
)
from ...utils.times import date_key
from .generator import generate_slots
from .template import working_hours_for_date

logger = logging.getLogger(__name__)


def resolve_day(
    day: date | str,
    template: WeeklyTemplate,
    settings: AvailabilitySettings,
    exception: AvailabilityException | None = None,
    persisted_slots: list[TimeSlot] | None = None,
) -> DayAvailability:
    """
    Resolve the authoritative schedule of one date.

    Raises:
        InvalidDuration: slots have to be generated and
                         settings.slot_duration_minutes <= 0
    """
    key = date_key(day)
    persisted_slots = persisted_slots or []
    hours = working_hours_for_date(template, key)

    # Step 1: Exception closes the day
    if exception is not None and not exception.is_available:
        if persisted_slots:
            logger.debug(f"{key}: closed by exception, masking {len(persisted_slots)} slots")
        return DayAvailability(date=key, is_working_day=False, time_slots=[])

    # Step 2: Exception opens the day
    if exception is not None:
        if persisted_slots:
            return DayAvailability(date=key, is_working_day=True, time_slots=list(persisted_slots))

        if hours.is_working:
            slots = generate_slots(
                hours.start_time,
                hours.end_time,
                settings.slot_duration_minutes,
                settings.break_duration_minutes,
                key=key,
            )
            return DayAvailability(date=key, is_working_day=True, time_slots=slots)

        # Exception overrides the template's closed status
        return DayAvailability(date=key, is_working_day=True, time_slots=[])

    # Step 3: Template decides
    if hours.is_working:
        if persisted_slots:
            return DayAvailability(date=key, is_working_day=True, time_slots=list(persisted_slots))

        slots = generate_slots(
            hours.start_time,
            hours.end_time,
            settings.slot_duration_minutes,
            settings.break_duration_minutes,
            key=key,
        )
        return DayAvailability(date=key, is_working_day=True, time_slots=slots)

    # Non-working weekday: keep persisted slots for display
    return DayAvailability(date=key, is_working_day=False, time_slots=list(persisted_slots))
