# backend/calendar_engine/services/availability/config.py
"""
Engine configuration.
"""

from dataclasses import dataclass
from functools import lru_cache

from ...config import settings
from ...utils.times import normalize_time, time_to_datetime


@dataclass(frozen=True)
class EngineConfig:
    """
    Configuration for the availability engine.

    Attributes:
        fallback_start_time: Day start used when no template entry resolves
        fallback_end_time: Day end used when no template entry resolves
        rollback_on_failure: Revert the optimistic update when persistence fails
        default_slot_duration_minutes: Provisioned when the Store has no settings
        default_advance_booking_days: Provisioned when the Store has no settings
    """
    fallback_start_time: str = "09:00"
    fallback_end_time: str = "17:00"
    rollback_on_failure: bool = True
    default_slot_duration_minutes: int = 60
    default_advance_booking_days: int = 30

    def __post_init__(self):
        """Validate configuration."""
        start = time_to_datetime(self.fallback_start_time)
        end = time_to_datetime(self.fallback_end_time)
        if start >= end:
            raise ValueError(
                f"fallback hours must satisfy start < end, got "
                f"{self.fallback_start_time}-{self.fallback_end_time}"
            )
        if self.default_slot_duration_minutes <= 0:
            raise ValueError(
                f"default_slot_duration_minutes must be > 0, got {self.default_slot_duration_minutes}"
            )

    @property
    def fallback_hours(self) -> tuple[str, str]:
        return normalize_time(self.fallback_start_time), normalize_time(self.fallback_end_time)


@lru_cache
def get_engine_config() -> EngineConfig:
    """
    Get engine configuration (singleton), read from application settings.
    """
    return EngineConfig(
        fallback_start_time=settings.fallback_start_time,
        fallback_end_time=settings.fallback_end_time,
        rollback_on_failure=settings.rollback_on_failure,
    )
