# backend/calendar_engine/services/availability/generator.py
"""
Slot generation.

Fixed-duration slots between start and end:
  "09:00"-"12:00" @ 60 → 09:00-10:00, 10:00-11:00, 11:00-12:00

✓ trailing partial slot is dropped, never truncated
✓ end <= start → no slots (no wraparound past midnight)
✓ optional break between consecutive slots
"""

import uuid
from datetime import timedelta

from ...errors import InvalidDuration
from ...schemas.availability import TimeSlot
from ...utils.times import time_to_datetime


def generate_slots(
    start_time: str,
    end_time: str,
    duration_minutes: int,
    break_minutes: int = 0,
    key: str | None = None,
) -> list[TimeSlot]:
    """
    Generate slots for [start_time, end_time).

    Args:
        start_time: "HH:MM"
        end_time: "HH:MM"
        duration_minutes: Length of each slot, must be > 0
        break_minutes: Gap between consecutive slots
        key: Deterministic id prefix (usually the date key).
             Without it ids are random.

    Returns:
        Ordered list of new slots (available, not booked).
    """
    if duration_minutes is None or duration_minutes <= 0:
        raise InvalidDuration(duration_minutes)
    if break_minutes < 0:
        raise InvalidDuration(break_minutes)

    current = time_to_datetime(start_time)
    end = time_to_datetime(end_time)
    step = timedelta(minutes=duration_minutes)
    gap = timedelta(minutes=break_minutes)

    slots: list[TimeSlot] = []

    while current + step <= end:
        slot_end = current + step
        start_str = current.strftime("%H:%M")
        end_str = slot_end.strftime("%H:%M")

        if key is not None:
            slot_id = f"{key}-{len(slots)}"
        else:
            slot_id = f"{start_str}-{end_str}-{uuid.uuid4().hex[:12]}"

        slots.append(TimeSlot(
            id=slot_id,
            start_time=start_str,
            end_time=end_str,
            is_available=True,
            is_booked=False,
        ))

        current = slot_end + gap

    return slots
