# backend/calendar_engine/services/availability/engine.py
"""
AvailabilityEngine: per-session owner of the availability state.

  Store → load() / load_month() → process_month_days() → availability map
  caller → toggle_* / regenerate_day_slots() → map + Store

Create one engine per provider session. Nothing is shared between
engines.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import date
from typing import Optional

from ...errors import EngineNotReady
from ...schemas.availability import (
    AvailabilityException,
    AvailabilitySettings,
    Booking,
    DayAvailability,
    TimeSlot,
    WeeklyTemplate,
)
from ...schemas.store import SettingsRow
from ...utils.times import date_key, days_between, month_bounds
from .batch import build_exceptions_map, build_slots_map, process_days
from .bookings import apply_bookings, bookable_slots, group_bookings_by_date
from .config import EngineConfig, get_engine_config
from .gate import GateState, LoadGate
from .mutations import (
    MutationCoordinator,
    MutationResult,
    RegenerateDaySlots,
    ToggleTimeSlot,
    ToggleWorkingDay,
)
from .store import AvailabilityStore
from .template import default_template, template_from_store_rows, template_to_store_rows

logger = logging.getLogger(__name__)


class AvailabilityEngine:
    """Availability state of one provider, plus the operations on it."""

    def __init__(self, store: AvailabilityStore, config: EngineConfig | None = None):
        self.store = store
        self.config = config or get_engine_config()
        self.gate = LoadGate()
        self.coordinator = MutationCoordinator(
            self.config.rollback_on_failure,
            resync=self._reload_day,
        )

        self.template: Optional[WeeklyTemplate] = None
        self.settings = AvailabilitySettings()
        self._availability: dict[str, DayAvailability] = {}
        self._bookings: dict[str, list[Booking]] = {}

    # ── State ────────────────────────────────────────────────────────────

    @property
    def is_ready(self) -> bool:
        return self.gate.is_ready(self.template, self.settings)

    @property
    def state(self) -> GateState:
        return self.gate.state(self.template, self.settings)

    def get_availability(self) -> dict[str, DayAvailability]:
        """Copy of the date → DayAvailability map."""
        return dict(self._availability)

    def get_day(self, day: date | str) -> Optional[DayAvailability]:
        return self._availability.get(date_key(day))

    def mark_slots_loaded(self) -> None:
        self.gate.slots_loaded = True

    def refresh_calendar(self) -> None:
        """
        Drop every resolved day. Load flags stay as they are: template and
        settings are still valid, the next load_month re-resolves.
        """
        self._availability.clear()
        logger.info("Availability map cleared")

    # ── Loading ──────────────────────────────────────────────────────────

    async def load(self) -> None:
        """
        Load working hours and settings, provisioning defaults
        when the Store has none.
        """
        hours_rows, settings_rows = await asyncio.gather(
            self.store.load_working_hours(),
            self.store.load_settings(),
        )

        if hours_rows:
            self.template = template_from_store_rows(hours_rows)
        else:
            logger.warning("No working hours in store, creating defaults")
            self.template = default_template()
            await self.store.save_working_hours(template_to_store_rows(self.template))
        self.gate.template_loaded = True

        if settings_rows:
            row = settings_rows[0]
            self.settings = AvailabilitySettings(
                slot_duration_minutes=row.slot_duration_minutes,
                break_duration_minutes=row.break_duration_minutes,
                advance_booking_days=row.advance_booking_days,
            )
        else:
            logger.warning("No settings in store, creating defaults")
            self.settings = AvailabilitySettings(
                slot_duration_minutes=self.config.default_slot_duration_minutes,
                advance_booking_days=self.config.default_advance_booking_days,
            )
            await self.store.save_settings(SettingsRow(**self.settings.model_dump()))
        self.gate.settings_loaded = True

        logger.info(
            f"Template and settings loaded "
            f"(slot {self.settings.slot_duration_minutes} min, "
            f"horizon {self.settings.advance_booking_days} days)"
        )

    async def load_time_slots_for_month(
        self,
        start: date | str,
        end: date | str,
    ) -> tuple[dict[str, AvailabilityException], dict[str, list[TimeSlot]]]:
        """Fetch exceptions and persisted slots for [start, end] as lookup maps."""
        data = await self.store.load_time_slots_for_date_range(date_key(start), date_key(end))

        exceptions_map = build_exceptions_map(data.exceptions)
        slots_map = build_slots_map(data.time_slots)

        self.gate.exceptions_loaded = True
        self.gate.slots_loaded = True

        logger.info(
            f"Loaded {date_key(start)}..{date_key(end)}: "
            f"{len(exceptions_map)} exceptions, {len(data.time_slots)} slots"
        )
        return exceptions_map, slots_map

    def process_month_days(
        self,
        days: Iterable[date | str],
        exceptions_map: dict[str, AvailabilityException],
        slots_map: dict[str, list[TimeSlot]],
        since: dict[str, Optional[int]] | None = None,
    ) -> dict[str, DayAvailability]:
        """
        Resolve days and merge them into the map.

        Args:
            since: version snapshot taken before the data was fetched;
                   days mutated after it, or with a mutation in flight,
                   are left untouched. None merges every day.

        Returns:
            The merged patch.
        """
        self.gate.ensure_ready(self.template, self.settings)

        patch = process_days(days, self.template, self.settings, exceptions_map, slots_map)

        merged: dict[str, DayAvailability] = {}
        for key, day in patch.items():
            if since is not None and self.coordinator.changed_since(key, since):
                logger.debug(f"{key}: mutated during load, keeping local state")
                continue
            merged[key] = apply_bookings(day, self._bookings.get(key, []))

        self._availability.update(merged)
        return merged

    async def load_month(self, start: date | str, end: date | str) -> dict[str, DayAvailability]:
        """Fetch and resolve every day of [start, end]."""
        snapshot = self.coordinator.versions()
        exceptions_map, slots_map = await self.load_time_slots_for_month(start, end)
        return self.process_month_days(days_between(start, end), exceptions_map, slots_map, since=snapshot)

    async def load_bookings_for_month(self, start: date | str, end: date | str) -> list[Booking]:
        """Fetch bookings for [start, end] and mark their slots."""
        bookings = await self.store.load_bookings_for_date_range(date_key(start), date_key(end))
        by_date = group_bookings_by_date(bookings)

        for day in days_between(start, end):
            key = date_key(day)
            self._bookings[key] = by_date.get(key, [])
            current = self._availability.get(key)
            if current is not None:
                self._availability[key] = apply_bookings(current, self._bookings[key])

        logger.info(f"Loaded {len(bookings)} bookings for {date_key(start)}..{date_key(end)}")
        return bookings

    async def _reload_month(self, key: str) -> None:
        """Re-read the month containing key to adopt Store-assigned slot ids."""
        if not self.is_ready:
            logger.info(f"{key}: engine not ready, skipping reload")
            return
        first, last = month_bounds(key)
        await self.load_month(first, last)

    async def _reload_day(self, key: str) -> None:
        """Re-read one date from the Store and take it as is."""
        if not self.is_ready:
            logger.info(f"{key}: engine not ready, dropping local state")
            self._availability.pop(key, None)
            return
        exceptions_map, slots_map = await self.load_time_slots_for_month(key, key)
        self.process_month_days([key], exceptions_map, slots_map)

    # ── Mutations ────────────────────────────────────────────────────────

    async def toggle_working_day(self, day: date | str) -> MutationResult:
        command = ToggleWorkingDay(
            self._availability,
            self.store,
            date_key(day),
            self.template,
            self.settings,
            self.config,
        )
        return await self.coordinator.run(command)

    async def toggle_time_slot(self, day: date | str, slot: TimeSlot) -> MutationResult:
        command = ToggleTimeSlot(self._availability, self.store, date_key(day), slot)
        return await self.coordinator.run(command)

    async def regenerate_day_slots(
        self,
        day: date | str,
        start_time: str,
        end_time: str,
        duration_minutes: int,
    ) -> MutationResult:
        """
        Replace the slots of a day. Raises ValidationError before
        touching anything when duration or range is invalid.
        """
        command = RegenerateDaySlots(
            self._availability,
            self.store,
            date_key(day),
            start_time,
            end_time,
            duration_minutes,
            reload=self._reload_month,
        )
        return await self.coordinator.run(command)

    # ── Client view ──────────────────────────────────────────────────────

    def get_bookable_slots(self, today: date | None = None) -> dict[str, list[TimeSlot]]:
        if not self.is_ready:
            raise EngineNotReady(self.gate.missing(self.template, self.settings))
        return bookable_slots(self._availability, self.settings, today or date.today())
