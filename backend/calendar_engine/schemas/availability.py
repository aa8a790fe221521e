# backend/calendar_engine/schemas/availability.py
"""
Pydantic schemas for availability data.

Weekday index: Monday=0 … Sunday=6 (same as date.weekday()).
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from ..utils.times import date_key, normalize_time, time_to_datetime


DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed", "no-show")


class _TimeRange(BaseModel):
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _normalize(cls, value):
        return normalize_time(value)

    @property
    def key(self) -> tuple[str, str]:
        return self.start_time, self.end_time


class WorkingHours(_TimeRange):
    """One weekday entry of the weekly template."""
    weekday_index: int = Field(ge=0, le=6)
    is_working: bool = True

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def _check_range(self):
        if self.is_working and time_to_datetime(self.start_time) >= time_to_datetime(self.end_time):
            raise ValueError(
                f"{DAY_NAMES[self.weekday_index]}: start_time must be before end_time"
            )
        return self

    @property
    def day(self) -> str:
        return DAY_NAMES[self.weekday_index]


class WeeklyTemplate(BaseModel):
    """Recurring default schedule, exactly one entry per weekday."""
    entries: list[WorkingHours]

    model_config = {"from_attributes": True}

    @field_validator("entries")
    @classmethod
    def _one_per_weekday(cls, entries: list[WorkingHours]) -> list[WorkingHours]:
        indexes = sorted(entry.weekday_index for entry in entries)
        if indexes != list(range(7)):
            raise ValueError(f"Weekly template needs one entry per weekday, got {indexes}")
        return sorted(entries, key=lambda entry: entry.weekday_index)

    def entry(self, weekday_index: int) -> WorkingHours:
        return self.entries[weekday_index]


class AvailabilityException(BaseModel):
    """Date-specific override of the weekly template."""
    date: str
    is_available: bool
    reason: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("date", mode="before")
    @classmethod
    def _date_key(cls, value):
        return date_key(value)


class TimeSlot(_TimeRange):
    """
    Bookable interval within a day.

    id is provisional until the Store assigns one.
    """
    id: str
    is_available: bool = True
    is_booked: bool = False
    booking_status: Optional[str] = None
    booking_details: Optional[dict] = None

    model_config = {"from_attributes": True}

    @model_validator(mode="after")
    def _check_range(self):
        if time_to_datetime(self.start_time) >= time_to_datetime(self.end_time):
            raise ValueError(f"Slot {self.id}: start_time must be before end_time")
        return self


class DayAvailability(BaseModel):
    """Resolved schedule of one date. Derived, never persisted."""
    date: str
    is_working_day: bool
    time_slots: list[TimeSlot] = []

    model_config = {"from_attributes": True}


class AvailabilitySettings(BaseModel):
    slot_duration_minutes: int = 0
    break_duration_minutes: int = 0
    advance_booking_days: int = 30

    model_config = {"from_attributes": True}


class Booking(_TimeRange):
    """External booking, read only."""
    id: str
    date: str
    client_name: str = ""
    client_email: str = ""
    client_phone: Optional[str] = None
    notes: Optional[str] = None
    status: str = "pending"

    model_config = {"from_attributes": True}

    @field_validator("date", mode="before")
    @classmethod
    def _date_key(cls, value):
        return date_key(value)

    @field_validator("status")
    @classmethod
    def _known_status(cls, value: str) -> str:
        if value not in BOOKING_STATUSES:
            raise ValueError(f"Unknown booking status: {value}")
        return value

    @property
    def occupies_slot(self) -> bool:
        return self.status != "cancelled"

    @property
    def client_info(self) -> dict:
        return {
            "booking_id": self.id,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_phone": self.client_phone,
            "notes": self.notes,
        }


# ── API ──────────────────────────────────────────────────────────────────


class RegenerateRequest(BaseModel):
    start_time: str
    end_time: str
    slot_duration_minutes: int


class MutationResultRead(BaseModel):
    success: bool
    error: Optional[str] = None
    error_type: Optional[str] = None
    rolled_back: bool = False
    day: Optional[DayAvailability] = None


class EngineStatus(BaseModel):
    state: str
    template_loaded: bool
    settings_loaded: bool
    exceptions_loaded: bool
    slots_loaded: bool
    missing: list[str]
    slot_duration_minutes: int
    advance_booking_days: int
    days_loaded: int
