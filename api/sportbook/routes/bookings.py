"""Booking routes: create, list, history, and the status transitions with QR payment."""

from fastapi import APIRouter, Depends, Query, status

from sportbook.core.auth import Caller
from sportbook.core.dependencies import get_current_caller, get_lifecycle, get_reports, get_reservation_engine
from sportbook.schemas import (
    BookingCreate,
    BookingResultOut,
    MessageOut,
    PaymentQROut,
    UserBookingOut,
    UserBookingPageOut,
)
from sportbook.services.lifecycle import BookingLifecycle
from sportbook.services.reporting import BookingReports
from sportbook.services.reservation import ReservationEngine, SlotRequest
from sportbook.services.timeslots import TimeRange

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResultOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: BookingCreate,
    caller: Caller = Depends(get_current_caller),
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    requests = [SlotRequest(c.court_id, TimeRange.parse(c.start_time, c.end_time)) for c in body.courts]
    return await engine.create_booking(
        caller,
        field_id=body.field_id,
        booking_date=body.booking_date,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        requests=requests,
    )


@router.get("", response_model=list[UserBookingOut])
async def list_my_bookings(
    caller: Caller = Depends(get_current_caller),
    reports: BookingReports = Depends(get_reports),
):
    return await reports.list_user_bookings(caller)


@router.get("/history", response_model=UserBookingPageOut)
async def booking_history(
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    reports: BookingReports = Depends(get_reports),
):
    return await reports.user_booking_stats(caller, page=page, per_page=per_page)


@router.post("/{booking_id}/confirm", response_model=MessageOut)
async def confirm_booking(
    booking_id: int,
    caller: Caller = Depends(get_current_caller),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    await lifecycle.confirm(booking_id, caller)
    return {"detail": "Booking confirmed; the owner has been notified of your payment"}


@router.post("/{booking_id}/complete", response_model=MessageOut)
async def complete_booking(
    booking_id: int,
    caller: Caller = Depends(get_current_caller),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    await lifecycle.complete(booking_id, caller)
    return {"detail": "Booking completed"}


@router.post("/{booking_id}/cancel", response_model=MessageOut)
async def cancel_booking(
    booking_id: int,
    caller: Caller = Depends(get_current_caller),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    await lifecycle.cancel(booking_id, caller)
    return {"detail": "Booking cancelled"}


@router.get("/{booking_id}/payment-qr", response_model=PaymentQROut)
async def get_payment_qr(
    booking_id: int,
    caller: Caller = Depends(get_current_caller),
    lifecycle: BookingLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.get_payment_qr_code(booking_id, caller)
