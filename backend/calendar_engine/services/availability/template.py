# backend/calendar_engine/services/availability/template.py
"""
Weekly template helpers.

Two weekday conventions exist:
  engine: Monday=0 … Sunday=6   (date.weekday())
  Store:  Sunday=0 … Saturday=6 (day_of_week column)

Conversion happens only in store_day_to_index / index_to_store_day,
called only at the Store boundary. Everything else uses
template_index_for_date.
"""

import logging
from datetime import date

from ...errors import TemplateMissing
from ...schemas.availability import WeeklyTemplate, WorkingHours
from ...schemas.store import WorkingHourRow
from ...utils.times import date_key, parse_date
from .config import EngineConfig

logger = logging.getLogger(__name__)


def template_index_for_date(value: date | str) -> int:
    """Template index (Monday=0) for a date."""
    return parse_date(value).weekday()


def store_day_to_index(day_of_week: int) -> int:
    """Store day_of_week (Sunday=0) → template index (Monday=0)."""
    return (day_of_week + 6) % 7


def index_to_store_day(weekday_index: int) -> int:
    """Template index (Monday=0) → Store day_of_week (Sunday=0)."""
    return (weekday_index + 1) % 7


def default_template() -> WeeklyTemplate:
    """Mon-Fri 09:00-17:00 working, Sat-Sun 10:00-15:00 off."""
    entries = []
    for index in range(7):
        if index < 5:
            entries.append(WorkingHours(
                weekday_index=index, start_time="09:00", end_time="17:00", is_working=True,
            ))
        else:
            entries.append(WorkingHours(
                weekday_index=index, start_time="10:00", end_time="15:00", is_working=False,
            ))
    return WeeklyTemplate(entries=entries)


def template_from_store_rows(rows: list[WorkingHourRow]) -> WeeklyTemplate:
    """
    Build a full template from Store rows.

    Weekdays missing in the Store get the default entry.
    """
    defaults = default_template()
    by_index = {store_day_to_index(row.day_of_week): row for row in rows}

    entries = []
    for index in range(7):
        row = by_index.get(index)
        if row is None:
            entries.append(defaults.entry(index))
            continue
        entries.append(WorkingHours(
            weekday_index=index,
            start_time=row.start_time,
            end_time=row.end_time,
            is_working=row.is_working,
        ))

    return WeeklyTemplate(entries=entries)


def template_to_store_rows(template: WeeklyTemplate) -> list[WorkingHourRow]:
    return [
        WorkingHourRow(
            day_of_week=index_to_store_day(entry.weekday_index),
            start_time=entry.start_time,
            end_time=entry.end_time,
            is_working=entry.is_working,
        )
        for entry in template.entries
    ]


def working_hours_for_date(
    template: WeeklyTemplate | None,
    value: date | str,
) -> WorkingHours:
    """Template entry for a date. Raises TemplateMissing without a template."""
    index = template_index_for_date(value)
    if template is None:
        raise TemplateMissing(date_key(value), index)
    return template.entry(index)


def hours_or_fallback(
    template: WeeklyTemplate | None,
    value: date | str,
    config: EngineConfig,
) -> tuple[str, str]:
    """
    (start, end) of the template entry for a date,
    or the configured fallback hours when no entry resolves.
    """
    try:
        entry = working_hours_for_date(template, value)
    except TemplateMissing as e:
        logger.warning(f"{e}, using fallback {config.fallback_start_time}-{config.fallback_end_time}")
        return config.fallback_hours
    return entry.start_time, entry.end_time
