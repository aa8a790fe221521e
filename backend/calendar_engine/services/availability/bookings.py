# backend/calendar_engine/services/availability/bookings.py
"""
Bookings on top of resolved days.

Bookings are owned elsewhere; here they only mark slots:
✓ slot with the same start/end as an occupying booking → is_booked
✓ cancelled bookings free nothing and mark nothing

Bookable view: what a client may book, within advance_booking_days.
"""

from collections.abc import Iterable
from datetime import date, timedelta

from ...schemas.availability import AvailabilitySettings, Booking, DayAvailability, TimeSlot
from ...utils.times import parse_date


def group_bookings_by_date(bookings: Iterable[Booking]) -> dict[str, list[Booking]]:
    result: dict[str, list[Booking]] = {}
    for booking in bookings:
        result.setdefault(booking.date, []).append(booking)
    return result


def apply_bookings(day: DayAvailability, bookings: list[Booking]) -> DayAvailability:
    """Return a copy of day with booked slots marked."""
    occupying = {b.key: b for b in bookings if b.occupies_slot} if bookings else {}
    if not occupying:
        return day

    slots: list[TimeSlot] = []
    for slot in day.time_slots:
        booking = occupying.get(slot.key)
        if booking is None:
            slots.append(slot)
            continue
        slots.append(slot.model_copy(update={
            "is_booked": True,
            "booking_status": booking.status,
            "booking_details": booking.client_info,
        }))

    return day.model_copy(update={"time_slots": slots})


def bookable_slots(
    availability: dict[str, DayAvailability],
    settings: AvailabilitySettings,
    today: date,
) -> dict[str, list[TimeSlot]]:
    """
    Slots a client can book: working days in
    [today, today + advance_booking_days], available and not booked.
    """
    last_day = today + timedelta(days=settings.advance_booking_days)
    result: dict[str, list[TimeSlot]] = {}

    for key in sorted(availability):
        day = availability[key]
        if not day.is_working_day:
            continue
        if not (today <= parse_date(key) <= last_day):
            continue

        free = [s for s in day.time_slots if s.is_available and not s.is_booked]
        if free:
            result[key] = free

    return result
