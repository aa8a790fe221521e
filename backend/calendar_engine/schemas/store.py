# backend/calendar_engine/schemas/store.py
"""
Row schemas of the Store API (snake_case JSON).

day_of_week follows the Store convention: Sunday=0 … Saturday=6.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from ..utils.times import date_key, normalize_time


class WorkingHourRow(BaseModel):
    id: Optional[str] = None
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str
    is_working: bool = True

    model_config = {"from_attributes": True}

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _normalize(cls, value):
        return normalize_time(value)


class SettingsRow(BaseModel):
    id: Optional[str] = None
    slot_duration_minutes: int
    break_duration_minutes: int = 0
    advance_booking_days: int = 30

    model_config = {"from_attributes": True}


class ExceptionRow(BaseModel):
    id: Optional[str] = None
    date: str
    is_available: bool
    reason: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("date", mode="before")
    @classmethod
    def _date_key(cls, value):
        return date_key(value)


class TimeSlotRow(BaseModel):
    id: Optional[str] = None
    date: str
    start_time: str
    end_time: str
    is_available: bool = True
    is_booked: bool = False

    model_config = {"from_attributes": True}

    @field_validator("date", mode="before")
    @classmethod
    def _date_key(cls, value):
        return date_key(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _normalize(cls, value):
        return normalize_time(value)

    @field_validator("is_booked", mode="before")
    @classmethod
    def _null_is_false(cls, value):
        return bool(value)


class SlotWrite(BaseModel):
    """Payload for save_time_slots / update_time_slot."""
    start_time: str
    end_time: str
    is_available: bool = True

    model_config = {"from_attributes": True}


class DateRangeData(BaseModel):
    """Result of load_time_slots_for_date_range."""
    exceptions: list[ExceptionRow] = []
    time_slots: list[TimeSlotRow] = []

    model_config = {"from_attributes": True}
