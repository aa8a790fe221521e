# backend/calendar_engine/services/availability/mutations.py
"""
Mutations of the availability map.

Each mutation is a command:
  apply()    — optimistic local update (sync, may raise ValidationError)
  persist()  — write to the Store (async, may raise PersistenceError)
  rollback() — restore the day as it was before apply()

A failed persist() with no write saved is rolled back. Once one write
has been saved the local snapshot no longer matches the Store, so the
date is re-read from the Store instead.

MutationCoordinator runs commands:
✓ one in-flight mutation per date (asyncio.Lock per date key)
✓ monotonic version per date, bumped on every apply, so month loads
  started earlier do not overwrite newer local state
✓ a date with a mutation in flight counts as changed for every load
  overlapping it
✓ every run returns a MutationResult
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Optional

from ...errors import (
    AvailabilityError,
    InvalidDuration,
    InvalidTimeRange,
    PersistenceError,
    SlotBooked,
)
from ...schemas.availability import (
    AvailabilitySettings,
    DayAvailability,
    TimeSlot,
    WeeklyTemplate,
)
from ...schemas.store import SlotWrite
from ...utils.times import time_to_datetime
from .config import EngineConfig
from .generator import generate_slots
from .store import AvailabilityStore
from .template import hours_or_fallback, template_index_for_date

logger = logging.getLogger(__name__)


@dataclass
class MutationResult:
    success: bool
    error: Optional[AvailabilityError] = None
    rolled_back: bool = False


def _slot_writes(slots: list[TimeSlot]) -> list[SlotWrite]:
    return [
        SlotWrite(start_time=s.start_time, end_time=s.end_time, is_available=s.is_available)
        for s in slots
    ]


# ── Commands ─────────────────────────────────────────────────────────────


class DayCommand:
    """Base command bound to one date of the availability map."""

    name = "mutation"

    def __init__(
        self,
        availability: dict[str, DayAvailability],
        store: AvailabilityStore,
        key: str,
    ):
        self.availability = availability
        self.store = store
        self.key = key
        self.error: Optional[AvailabilityError] = None
        self.writes = 0
        self._previous: Optional[DayAvailability] = None
        self._applied = False

    def apply(self) -> bool:
        """
        Update local state. Returns False when the command is a no-op
        (self.error then says why).
        """
        previous = self.availability.get(self.key)
        new_day = self._build()
        if new_day is None:
            return False

        self._previous = previous
        self.availability[self.key] = new_day
        self._applied = True
        return True

    def rollback(self) -> None:
        if not self._applied:
            return
        if self._previous is None:
            self.availability.pop(self.key, None)
        else:
            self.availability[self.key] = self._previous
        self._applied = False

    def _build(self) -> Optional[DayAvailability]:
        raise NotImplementedError

    async def _write(self, operation: Awaitable[object]) -> None:
        await operation
        self.writes += 1

    async def persist(self) -> None:
        raise NotImplementedError

    async def after_persist(self) -> None:
        """Follow-up once the write succeeded. Never rolled back."""


class ToggleWorkingDay(DayCommand):
    """
    Flip is_working_day of a date.

    On: keep existing slots, or generate them from the template hours
        (fallback hours when no entry resolves).
    Off: clear slots locally and in the Store.
    The new value is always stored as an exception for the date.
    """

    name = "toggle_working_day"

    def __init__(
        self,
        availability: dict[str, DayAvailability],
        store: AvailabilityStore,
        key: str,
        template: WeeklyTemplate | None,
        settings: AvailabilitySettings,
        config: EngineConfig,
    ):
        super().__init__(availability, store, key)
        self.template = template
        self.settings = settings
        self.config = config
        self.is_working = False
        self.slots: list[TimeSlot] = []

    def _build(self) -> DayAvailability:
        current = self.availability.get(self.key)

        if current is not None:
            is_working = not current.is_working_day
            slots = list(current.time_slots)
        else:
            template_working = False
            if self.template is not None:
                template_working = self.template.entry(template_index_for_date(self.key)).is_working
            is_working = not template_working
            slots = []

        if is_working and not slots:
            start, end = hours_or_fallback(self.template, self.key, self.config)
            slots = generate_slots(
                start,
                end,
                self.settings.slot_duration_minutes,
                self.settings.break_duration_minutes,
                key=self.key,
            )
        elif not is_working:
            slots = []

        self.is_working = is_working
        self.slots = slots
        return DayAvailability(date=self.key, is_working_day=is_working, time_slots=slots)

    async def persist(self) -> None:
        await self._write(self.store.save_exception(self.key, self.is_working))

        if self.is_working and self.slots:
            await self._write(self.store.save_time_slots(self.key, _slot_writes(self.slots)))
        elif not self.is_working:
            await self._write(self.store.delete_time_slots_for_date(self.key))


class ToggleTimeSlot(DayCommand):
    """
    Flip is_available of one slot (matched by id).

    Booked slots are never touched: no local change, no Store call.
    """

    name = "toggle_time_slot"

    def __init__(
        self,
        availability: dict[str, DayAvailability],
        store: AvailabilityStore,
        key: str,
        slot: TimeSlot,
    ):
        super().__init__(availability, store, key)
        self.slot = slot
        self.new_value = not slot.is_available

    def apply(self) -> bool:
        if self.slot.is_booked:
            self.error = SlotBooked(self.slot.id)
            return False

        current = self.availability.get(self.key)
        local = None
        if current is not None:
            local = next((s for s in current.time_slots if s.id == self.slot.id), None)

        if local is not None and local.is_booked:
            self.error = SlotBooked(local.id)
            return False

        if local is not None:
            self.new_value = not local.is_available

        if current is None or local is None:
            # Day not held locally: Store only
            self._applied = False
            return True

        return super().apply()

    def _build(self) -> DayAvailability:
        current = self.availability[self.key]
        slots = [
            s.model_copy(update={"is_available": self.new_value}) if s.id == self.slot.id else s
            for s in current.time_slots
        ]
        return current.model_copy(update={"time_slots": slots})

    async def persist(self) -> None:
        await self._write(self.store.update_time_slot(
            self.key,
            SlotWrite(
                start_time=self.slot.start_time,
                end_time=self.slot.end_time,
                is_available=self.new_value,
            ),
        ))


class RegenerateDaySlots(DayCommand):
    """
    Replace every slot of a date with freshly generated ones.

    Destructive. After the write the month is reloaded so the slots
    carry Store-assigned ids.
    """

    name = "regenerate_day_slots"

    def __init__(
        self,
        availability: dict[str, DayAvailability],
        store: AvailabilityStore,
        key: str,
        start_time: str,
        end_time: str,
        duration_minutes: int,
        reload: Callable[[str], Awaitable[object]],
    ):
        super().__init__(availability, store, key)

        if duration_minutes is None or duration_minutes <= 0:
            raise InvalidDuration(duration_minutes)
        if time_to_datetime(end_time) <= time_to_datetime(start_time):
            raise InvalidTimeRange(start_time, end_time)

        self.slots = generate_slots(start_time, end_time, duration_minutes, key=key)
        self.reload = reload

    def _build(self) -> DayAvailability:
        return DayAvailability(date=self.key, is_working_day=True, time_slots=self.slots)

    async def persist(self) -> None:
        await self._write(self.store.save_exception(self.key, True))
        await self._write(self.store.delete_time_slots_for_date(self.key))
        if self.slots:
            await self._write(self.store.save_time_slots(self.key, _slot_writes(self.slots)))
        else:
            logger.warning(f"{self.key}: no slots generated, nothing to save")

    async def after_persist(self) -> None:
        await self.reload(self.key)


# ── Coordinator ──────────────────────────────────────────────────────────


class MutationCoordinator:
    """Runs commands with per-date serialisation and version stamps."""

    def __init__(
        self,
        rollback_on_failure: bool = True,
        resync: Optional[Callable[[str], Awaitable[object]]] = None,
    ):
        self.rollback_on_failure = rollback_on_failure
        self.resync = resync
        self._locks: dict[str, asyncio.Lock] = {}
        self._versions: dict[str, int] = {}

    def lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def in_flight(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def version(self, key: str) -> int:
        return self._versions.get(key, 0)

    def versions(self) -> dict[str, Optional[int]]:
        """
        Snapshot of all version stamps. Dates with a mutation in flight
        map to None: whatever a load reads for them may predate the write.
        """
        snapshot: dict[str, Optional[int]] = dict(self._versions)
        for key in self._locks:
            if self.in_flight(key):
                snapshot[key] = None
        return snapshot

    def changed_since(self, key: str, snapshot: dict[str, Optional[int]]) -> bool:
        if key in snapshot and snapshot[key] is None:
            return True
        if self.in_flight(key):
            return True
        return self.version(key) != snapshot.get(key, 0)

    def bump(self, key: str) -> None:
        self._versions[key] = self.version(key) + 1

    async def run(self, command: DayCommand) -> MutationResult:
        async with self.lock_for(command.key):
            if not command.apply():
                logger.info(f"{command.name} {command.key}: skipped ({command.error})")
                return MutationResult(success=False, error=command.error)

            self.bump(command.key)

            try:
                await command.persist()
            except PersistenceError as e:
                logger.error(f"{command.name} {command.key}: persist failed: {e}")
                return await self._recover(command, e)

        # Outside the lock: a reload must see this date as settled
        try:
            await command.after_persist()
        except PersistenceError as e:
            logger.error(f"{command.name} {command.key}: saved, but follow-up failed: {e}")
            return MutationResult(success=False, error=e)

        logger.info(f"{command.name} {command.key}: saved")
        return MutationResult(success=True)

    async def _recover(self, command: DayCommand, error: PersistenceError) -> MutationResult:
        """Bring the date back in line with the Store after a failed persist."""
        if command.writes == 0:
            if not self.rollback_on_failure:
                return MutationResult(success=False, error=error)
            command.rollback()
            return MutationResult(success=False, error=error, rolled_back=True)

        logger.warning(
            f"{command.name} {command.key}: {command.writes} write(s) saved before the failure, "
            f"re-reading the date"
        )
        if self.resync is not None:
            try:
                await self.resync(command.key)
            except PersistenceError as e:
                logger.error(f"{command.name} {command.key}: re-read failed: {e}")
        return MutationResult(success=False, error=error)
