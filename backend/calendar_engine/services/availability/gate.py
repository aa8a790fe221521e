# backend/calendar_engine/services/availability/gate.py
"""
Load gate: no day is resolved until template, settings, exceptions
and slots have all been loaded.
"""

from dataclasses import dataclass
from enum import Enum

from ...errors import EngineNotReady
from ...schemas.availability import AvailabilitySettings, WeeklyTemplate


class GateState(str, Enum):
    LOADING = "loading"
    READY = "ready"


@dataclass
class LoadGate:
    template_loaded: bool = False
    settings_loaded: bool = False
    exceptions_loaded: bool = False
    slots_loaded: bool = False

    def missing(
        self,
        template: WeeklyTemplate | None,
        settings: AvailabilitySettings | None,
    ) -> list[str]:
        """Names of the unmet readiness conditions."""
        missing = []
        if not self.template_loaded:
            missing.append("template")
        if not self.settings_loaded:
            missing.append("settings")
        if not self.exceptions_loaded:
            missing.append("exceptions")
        if not self.slots_loaded:
            missing.append("slots")
        if template is None or not template.entries:
            missing.append("template entries")
        if settings is None or settings.slot_duration_minutes <= 0:
            missing.append("slot duration")
        return missing

    def is_ready(
        self,
        template: WeeklyTemplate | None,
        settings: AvailabilitySettings | None,
    ) -> bool:
        return not self.missing(template, settings)

    def state(
        self,
        template: WeeklyTemplate | None,
        settings: AvailabilitySettings | None,
    ) -> GateState:
        return GateState.READY if self.is_ready(template, settings) else GateState.LOADING

    def ensure_ready(
        self,
        template: WeeklyTemplate | None,
        settings: AvailabilitySettings | None,
    ) -> None:
        missing = self.missing(template, settings)
        if missing:
            raise EngineNotReady(missing)
