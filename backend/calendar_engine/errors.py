# backend/calendar_engine/errors.py
"""
Error taxonomy of the availability engine.

ValidationError   — malformed duration / time range (raised synchronously)
TemplateMissing   — no template entry for a weekday (engine falls back)
PersistenceError  — a Store call failed
SlotBooked        — toggle attempted on a booked slot
EngineNotReady    — resolution attempted before the load gate opened
"""


class AvailabilityError(Exception):
    """Base class for engine errors."""


class ValidationError(AvailabilityError, ValueError):
    pass


class InvalidDuration(ValidationError):
    def __init__(self, duration_minutes: int):
        self.duration_minutes = duration_minutes
        super().__init__(f"Slot duration must be > 0 minutes, got {duration_minutes}")


class InvalidTimeRange(ValidationError):
    def __init__(self, start_time: str, end_time: str):
        self.start_time = start_time
        self.end_time = end_time
        super().__init__(f"End time must be after start time, got {start_time}-{end_time}")


class InvalidTimeFormat(ValidationError):
    def __init__(self, value):
        self.value = value
        super().__init__(f"Expected time as HH:MM, got {value!r}")


class TemplateMissing(AvailabilityError):
    def __init__(self, date_key: str, weekday_index: int):
        self.date_key = date_key
        self.weekday_index = weekday_index
        super().__init__(f"No working hours for weekday {weekday_index} ({date_key})")


class PersistenceError(AvailabilityError):
    def __init__(self, operation: str, detail: str = "", status_code: int | None = None):
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
        message = f"Store call failed: {operation}"
        if status_code is not None:
            message += f" -> {status_code}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class SlotBooked(AvailabilityError):
    def __init__(self, slot_id: str):
        self.slot_id = slot_id
        super().__init__(f"Slot {slot_id} is booked and cannot be toggled")


class EngineNotReady(AvailabilityError):
    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Availability data not loaded yet: {', '.join(missing)}")
