"""Field and court routes: owner locks, availability grid, lock lookups."""

from datetime import date, time

from fastapi import APIRouter, Depends, Query, status

from sportbook.core.auth import Caller
from sportbook.core.dependencies import get_availability, get_current_caller, get_reservation_engine
from sportbook.schemas import AvailabilityOut, LockCreate, LockResultOut, SlotLockStatusOut
from sportbook.services.availability import AvailabilityService
from sportbook.services.reservation import ReservationEngine, SlotRequest
from sportbook.services.timeslots import TimeRange

router = APIRouter(tags=["courts"])


def _range_out(request: SlotRequest) -> dict:
    return {
        "court_id": request.court_id,
        "start_time": request.slot.start.strftime("%H:%M"),
        "end_time": request.slot.end.strftime("%H:%M"),
    }


@router.post("/fields/{field_id}/locks", response_model=LockResultOut, status_code=status.HTTP_201_CREATED)
async def lock_slots(
    field_id: int,
    body: LockCreate,
    caller: Caller = Depends(get_current_caller),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    requests = [SlotRequest(c.court_id, TimeRange.parse(c.start_time, c.end_time)) for c in body.courts]
    result = await engine.lock_slots(caller, field_id, body.date, requests)
    return {
        "created": [_range_out(r) for r in result.created],
        "already_locked": [_range_out(r) for r in result.already_locked],
        "conflicts": [_range_out(r) for r in result.conflicts],
    }


@router.get("/fields/{field_id}/availability", response_model=list[AvailabilityOut])
async def field_availability(
    field_id: int,
    query_date: date = Query(..., alias="date"),
    caller: Caller = Depends(get_current_caller),
    availability: AvailabilityService = Depends(get_availability),
):
    courts = await availability.for_field(field_id, query_date)
    return [
        {"court_id": c.court_id, "court_name": c.court_name, "date": query_date, "slots": c.slots} for c in courts
    ]


@router.get("/courts/{court_id}/lock", response_model=SlotLockStatusOut)
async def court_lock_status(
    court_id: int,
    query_date: date = Query(..., alias="date"),
    start_time: time = Query(...),
    end_time: time = Query(...),
    caller: Caller = Depends(get_current_caller),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    slot = TimeRange.parse(start_time, end_time)
    return {
        "court_id": court_id,
        "date": query_date,
        "start_time": slot.start.strftime("%H:%M"),
        "end_time": slot.end.strftime("%H:%M"),
        "is_locked": await engine.is_slot_locked(court_id, query_date, slot),
    }
