# backend/calendar_engine/services/availability/__init__.py
"""
Availability engine.

Weekly template + per-date exceptions + persisted slots → per-day schedule,
and the mutations of that schedule.
"""

from .config import EngineConfig, get_engine_config
from .generator import generate_slots
from .template import template_index_for_date
from .resolver import resolve_day
from .batch import process_days
from .gate import LoadGate
from .mutations import MutationResult
from .store import AvailabilityStore, HttpAvailabilityStore
from .engine import AvailabilityEngine

__all__ = [
    "EngineConfig",
    "get_engine_config",
    "generate_slots",
    "template_index_for_date",
    "resolve_day",
    "process_days",
    "LoadGate",
    "MutationResult",
    "AvailabilityStore",
    "HttpAvailabilityStore",
    "AvailabilityEngine",
]
