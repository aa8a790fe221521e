# backend/calendar_engine/routers/availability.py
"""
Availability API endpoints.

GET  /availability                                   - resolved days
GET  /availability/status                            - load gate
POST /availability/load                              - template + settings
POST /availability/months                            - load & resolve a range
POST /availability/refresh                           - clear resolved days
POST /availability/days/{date}/toggle                - working day on/off
POST /availability/days/{date}/slots/{slot_id}/toggle
POST /availability/days/{date}/regenerate
GET  /availability/bookable                          - client view
"""

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ..errors import EngineNotReady, PersistenceError, ValidationError
from ..schemas.availability import (
    DayAvailability,
    EngineStatus,
    MutationResultRead,
    RegenerateRequest,
    TimeSlot,
)
from ..services.availability import AvailabilityEngine, MutationResult


router = APIRouter(prefix="/availability", tags=["availability"])


def get_engine(request: Request) -> AvailabilityEngine:
    return request.app.state.engine


def _result(engine: AvailabilityEngine, result: MutationResult, day: date) -> MutationResultRead:
    return MutationResultRead(
        success=result.success,
        error=str(result.error) if result.error else None,
        error_type=type(result.error).__name__ if result.error else None,
        rolled_back=result.rolled_back,
        day=engine.get_day(day),
    )


@router.get("/", response_model=dict[str, DayAvailability])
def get_availability(
    start_date: date | None = None,
    end_date: date | None = None,
    engine: AvailabilityEngine = Depends(get_engine),
):
    availability = engine.get_availability()
    if start_date is None and end_date is None:
        return availability

    start_key = (start_date or date.min).isoformat()
    end_key = (end_date or date.max).isoformat()
    return {k: v for k, v in availability.items() if start_key <= k <= end_key}


@router.get("/status", response_model=EngineStatus)
def get_status(engine: AvailabilityEngine = Depends(get_engine)):
    gate = engine.gate
    return EngineStatus(
        state=engine.state.value,
        template_loaded=gate.template_loaded,
        settings_loaded=gate.settings_loaded,
        exceptions_loaded=gate.exceptions_loaded,
        slots_loaded=gate.slots_loaded,
        missing=gate.missing(engine.template, engine.settings),
        slot_duration_minutes=engine.settings.slot_duration_minutes,
        advance_booking_days=engine.settings.advance_booking_days,
        days_loaded=len(engine.get_availability()),
    )


@router.post("/load", response_model=EngineStatus)
async def load(engine: AvailabilityEngine = Depends(get_engine)):
    try:
        await engine.load()
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return get_status(engine)


@router.post("/months", response_model=dict[str, DayAvailability])
async def load_month(
    start_date: date,
    end_date: date,
    with_bookings: bool = True,
    engine: AvailabilityEngine = Depends(get_engine),
):
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")

    try:
        if with_bookings:
            await engine.load_bookings_for_month(start_date, end_date)
        return await engine.load_month(start_date, end_date)
    except EngineNotReady as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/refresh", status_code=status.HTTP_204_NO_CONTENT)
def refresh_calendar(engine: AvailabilityEngine = Depends(get_engine)):
    engine.refresh_calendar()


@router.post("/days/{day}/toggle", response_model=MutationResultRead)
async def toggle_working_day(day: date, engine: AvailabilityEngine = Depends(get_engine)):
    try:
        result = await engine.toggle_working_day(day)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _result(engine, result, day)


@router.post("/days/{day}/slots/{slot_id}/toggle", response_model=MutationResultRead)
async def toggle_time_slot(day: date, slot_id: str, engine: AvailabilityEngine = Depends(get_engine)):
    current = engine.get_day(day)
    slot: TimeSlot | None = None
    if current is not None:
        slot = next((s for s in current.time_slots if s.id == slot_id), None)
    if slot is None:
        raise HTTPException(status_code=404, detail="Slot not found")

    result = await engine.toggle_time_slot(day, slot)
    return _result(engine, result, day)


@router.post("/days/{day}/regenerate", response_model=MutationResultRead)
async def regenerate_day_slots(
    day: date,
    data: RegenerateRequest,
    engine: AvailabilityEngine = Depends(get_engine),
):
    try:
        result = await engine.regenerate_day_slots(
            day, data.start_time, data.end_time, data.slot_duration_minutes
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _result(engine, result, day)


@router.get("/bookable", response_model=dict[str, list[TimeSlot]])
def get_bookable_slots(
    today: date | None = Query(None),
    engine: AvailabilityEngine = Depends(get_engine),
):
    try:
        return engine.get_bookable_slots(today)
    except EngineNotReady as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
