"""
backend/calendar_engine/services/availability/store.py

Store boundary: asynchronous persistence of working hours, settings,
exceptions and time slots.

AvailabilityStore        — what the engine needs
HttpAvailabilityStore    — the same over the availability JSON API

Every failure surfaces as PersistenceError.

Wire format: envelopes and query parameters are camelCase (workingHours,
timeSlots, startDate); row fields are snake_case like the table columns,
except the items of POST /time-slots, which that route reads as
startTime / endTime / isAvailable.
"""

import logging
from typing import Optional, Protocol

import httpx

from ...config import settings as app_settings
from ...errors import PersistenceError
from ...schemas.availability import Booking
from ...schemas.store import (
    DateRangeData,
    ExceptionRow,
    SettingsRow,
    SlotWrite,
    TimeSlotRow,
    WorkingHourRow,
)

logger = logging.getLogger(__name__)


class AvailabilityStore(Protocol):
    async def load_working_hours(self) -> list[WorkingHourRow]: ...

    async def load_settings(self) -> list[SettingsRow]: ...

    async def save_working_hours(self, rows: list[WorkingHourRow]) -> None: ...

    async def save_settings(self, row: SettingsRow) -> None: ...

    async def load_time_slots_for_date_range(self, start_date: str, end_date: str) -> DateRangeData: ...

    async def load_bookings_for_date_range(self, start_date: str, end_date: str) -> list[Booking]: ...

    async def save_exception(self, date: str, is_available: bool, reason: Optional[str] = None) -> None: ...

    async def save_time_slots(self, date: str, slots: list[SlotWrite]) -> None: ...

    async def update_time_slot(self, date: str, slot: SlotWrite) -> None: ...

    async def delete_time_slots_for_date(self, date: str) -> None: ...


class HttpAvailabilityStore:
    """Asynchronous client for the availability API."""

    PREFIX = "/api/availability"

    def __init__(
        self,
        base_url: str = app_settings.store_url,
        token: str = app_settings.store_token,
        timeout: float = app_settings.store_timeout_seconds,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    async def _request(
        self,
        method: str,
        path: str,
        headers: dict = None,
        **kwargs
    ) -> Optional[dict | list]:
        """Base HTTP request. Raises PersistenceError on any failure."""
        url = f"{self.base_url}{self.PREFIX}{path}"
        operation = f"{method} {path}"

        _headers = {"X-Internal-Token": self.token}
        if headers:
            _headers.update(headers)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                resp = await client.request(method, url, headers=_headers, **kwargs)
            except httpx.HTTPError as e:
                logger.error(f"Store request failed: {operation} -> {e}")
                raise PersistenceError(operation, str(e)) from e

        if resp.status_code == 204:
            return None

        if resp.status_code >= 400:
            logger.error(f"Store error: {operation} -> {resp.status_code}")
            raise PersistenceError(operation, resp.text[:200], resp.status_code)

        if not resp.content:
            return None

        try:
            return resp.json()
        except ValueError as e:
            logger.error(f"Store returned invalid JSON: {operation}")
            raise PersistenceError(operation, "invalid JSON") from e

    # ------------------------------------------------------------------
    # Working hours & settings
    # ------------------------------------------------------------------

    async def load_working_hours(self) -> list[WorkingHourRow]:
        """GET /working-hours"""
        result = await self._request("GET", "/working-hours") or {}
        return [WorkingHourRow.model_validate(row) for row in result.get("workingHours") or []]

    async def load_settings(self) -> list[SettingsRow]:
        """GET /settings"""
        result = await self._request("GET", "/settings") or {}
        return [SettingsRow.model_validate(row) for row in result.get("settings") or []]

    async def save_working_hours(self, rows: list[WorkingHourRow]) -> None:
        """POST /working-hours — upsert by day_of_week."""
        data = {"workingHours": [row.model_dump(exclude={"id"}) for row in rows]}
        await self._request("POST", "/working-hours", json=data)

    async def save_settings(self, row: SettingsRow) -> None:
        """POST /settings"""
        await self._request("POST", "/settings", json={"settings": row.model_dump(exclude={"id"})})

    # ------------------------------------------------------------------
    # Date range
    # ------------------------------------------------------------------

    async def load_time_slots_for_date_range(self, start_date: str, end_date: str) -> DateRangeData:
        """GET /days?startDate=…&endDate=… — exceptions and slots."""
        result = await self._request(
            "GET", "/days", params={"startDate": start_date, "endDate": end_date}
        ) or {}
        return DateRangeData(
            exceptions=[ExceptionRow.model_validate(row) for row in result.get("exceptions") or []],
            time_slots=[TimeSlotRow.model_validate(row) for row in result.get("timeSlots") or []],
        )

    async def load_bookings_for_date_range(self, start_date: str, end_date: str) -> list[Booking]:
        """GET /bookings-for-month — bookings grouped by date."""
        result = await self._request(
            "GET", "/bookings-for-month", params={"startDate": start_date, "endDate": end_date}
        ) or {}

        bookings = []
        for date_str, rows in (result.get("bookings") or {}).items():
            for row in rows:
                bookings.append(Booking.model_validate({"date": date_str, **row}))
        return bookings

    # ------------------------------------------------------------------
    # Exceptions & slots
    # ------------------------------------------------------------------

    async def save_exception(self, date: str, is_available: bool, reason: Optional[str] = None) -> None:
        """POST /exceptions — upsert by date."""
        data = {"date": date, "is_available": is_available, "reason": reason}
        await self._request("POST", "/exceptions", json=data)

    async def save_time_slots(self, date: str, slots: list[SlotWrite]) -> None:
        """POST /time-slots — slots of a date, camelCase items as the route reads them."""
        data = {
            "date": date,
            "timeSlots": [
                {"startTime": s.start_time, "endTime": s.end_time, "isAvailable": s.is_available}
                for s in slots
            ],
        }
        await self._request("POST", "/time-slots", json=data)

    async def update_time_slot(self, date: str, slot: SlotWrite) -> None:
        """PUT /time-slots — one slot by (date, start_time, end_time)."""
        await self._request("PUT", "/time-slots", json={"date": date, **slot.model_dump()})

    async def delete_time_slots_for_date(self, date: str) -> None:
        """DELETE /time-slots?date=…"""
        await self._request("DELETE", "/time-slots", params={"date": date})
