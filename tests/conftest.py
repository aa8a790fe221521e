from typing import Optional

import pytest
import pytest_asyncio

from calendar_engine.errors import PersistenceError
from calendar_engine.schemas.availability import Booking
from calendar_engine.schemas.store import (
    DateRangeData,
    ExceptionRow,
    SettingsRow,
    SlotWrite,
    TimeSlotRow,
    WorkingHourRow,
)
from calendar_engine.services.availability import AvailabilityEngine, EngineConfig

WEDNESDAY = "2026-01-14"
SATURDAY = "2026-01-17"


def weekday_rows() -> list[WorkingHourRow]:
    """Mon-Fri 09:00-17:00, weekend off (Store convention: Sunday=0)."""
    rows = []
    for day_of_week in range(7):
        working = 1 <= day_of_week <= 5
        rows.append(WorkingHourRow(
            day_of_week=day_of_week,
            start_time="09:00" if working else "10:00",
            end_time="17:00" if working else "15:00",
            is_working=working,
        ))
    return rows


class FakeStore:
    """In-memory Store recording every call."""

    def __init__(self, working_hours=None, settings=None):
        self.working_hours: list[WorkingHourRow] = list(working_hours or [])
        self.settings: list[SettingsRow] = list(settings or [])
        self.exceptions: dict[str, ExceptionRow] = {}
        self.slots: dict[str, list[TimeSlotRow]] = {}
        self.bookings: list[Booking] = []
        self.calls: list[tuple] = []
        self.fail_on: set[str] = set()
        self._next_id = 0

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail_on:
            raise PersistenceError(name, "boom", 500)

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def add_slot(self, date: str, start: str, end: str, is_available=True, is_booked=False) -> TimeSlotRow:
        self._next_id += 1
        row = TimeSlotRow(
            id=f"db-{self._next_id}",
            date=date,
            start_time=start,
            end_time=end,
            is_available=is_available,
            is_booked=is_booked,
        )
        self.slots.setdefault(date, []).append(row)
        return row

    async def load_working_hours(self):
        self._record("load_working_hours")
        return list(self.working_hours)

    async def load_settings(self):
        self._record("load_settings")
        return list(self.settings)

    async def save_working_hours(self, rows):
        self._record("save_working_hours", rows)
        self.working_hours = list(rows)

    async def save_settings(self, row):
        self._record("save_settings", row)
        self.settings = [row]

    async def load_time_slots_for_date_range(self, start_date, end_date):
        self._record("load_time_slots_for_date_range", start_date, end_date)
        return DateRangeData(
            exceptions=[e for d, e in self.exceptions.items() if start_date <= d <= end_date],
            time_slots=[s for d, rows in self.slots.items() if start_date <= d <= end_date for s in rows],
        )

    async def load_bookings_for_date_range(self, start_date, end_date):
        self._record("load_bookings_for_date_range", start_date, end_date)
        return [b for b in self.bookings if start_date <= b.date <= end_date]

    async def save_exception(self, date, is_available, reason: Optional[str] = None):
        self._record("save_exception", date, is_available)
        self.exceptions[date] = ExceptionRow(date=date, is_available=is_available, reason=reason)

    async def save_time_slots(self, date, slots: list[SlotWrite]):
        self._record("save_time_slots", date, slots)
        existing = {(s.start_time, s.end_time): s for s in self.slots.get(date, [])}
        for slot in slots:
            row = existing.get((slot.start_time, slot.end_time))
            if row is not None:
                row.is_available = slot.is_available
            else:
                self.add_slot(date, slot.start_time, slot.end_time, slot.is_available)

    async def update_time_slot(self, date, slot: SlotWrite):
        self._record("update_time_slot", date, slot)
        for row in self.slots.get(date, []):
            if (row.start_time, row.end_time) == (slot.start_time, slot.end_time):
                row.is_available = slot.is_available

    async def delete_time_slots_for_date(self, date):
        self._record("delete_time_slots_for_date", date)
        self.slots.pop(date, None)


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def store():
    return FakeStore(
        working_hours=weekday_rows(),
        settings=[SettingsRow(slot_duration_minutes=60, advance_booking_days=30)],
    )


@pytest.fixture
def engine(store, config):
    return AvailabilityEngine(store, config)


@pytest_asyncio.fixture
async def ready_engine(engine, store):
    """Engine with template, settings and January 2026 loaded."""
    await engine.load()
    await engine.load_month("2026-01-01", "2026-01-31")
    store.calls.clear()
    return engine
