"""Booking status transitions.

    pending -> confirmed -> completed
    pending -> cancelled
    confirmed -> cancelled  (confirmed again after the payment window)

Confirmation is the customer saying "I have transferred the money"; completion
is the owner saying "it arrived". A booking that is still open after the
payment window is cancelled and its court slots are released, either lazily
when the customer touches it again or, for pending ones, by the periodic sweep.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sportbook.core.auth import Caller
from sportbook.core.clock import Clock, as_utc, system_clock
from sportbook.core.config import settings
from sportbook.core.errors import (
    AlreadyCompleted,
    AlreadyConfirmed,
    AlreadyProcessed,
    InvalidTransition,
    NotCancellable,
    NotFound,
    PaymentOverdue,
    Unauthorized,
)
from sportbook.core.unit_of_work import UnitOfWorkFactory
from sportbook.models.booking import Booking, BookingCourt, BookingStatus, PaymentStatus
from sportbook.models.venue import Court, Field, User, Venue
from sportbook.services.directory import VenueDirectory
from sportbook.services.email import CourtTimes, EmailNotifier, PaymentNotification, dispatch_notification
from sportbook.services.payments import PaymentInstructions, PaymentLedger, payment_instructions, payment_reference
from sportbook.services.slot_locks import SlotLockStore
from sportbook.services.timeslots import TimeRange, group_by_court

logger = logging.getLogger(__name__)

DISPLAY_CANCELLED = "cancelled"
DISPLAY_COMPLETED = "completed"
DISPLAY_AWAITING_PAYMENT = "awaiting payment"
DISPLAY_AWAITING_CONFIRMATION = "awaiting owner confirmation"
DISPLAY_EXPIRED = "expired"


def display_status(status: BookingStatus, created_at: datetime, now: datetime, window_minutes: int | None = None) -> str:
    """Customer-facing label. Recent pending/confirmed bookings are still "in progress"."""
    if status == BookingStatus.CANCELLED:
        return DISPLAY_CANCELLED
    if status == BookingStatus.COMPLETED:
        return DISPLAY_COMPLETED

    window = timedelta(minutes=window_minutes if window_minutes is not None else settings.display_window_minutes)
    if now - as_utc(created_at) < window:
        if status == BookingStatus.PENDING:
            return DISPLAY_AWAITING_PAYMENT
        return DISPLAY_AWAITING_CONFIRMATION
    return DISPLAY_EXPIRED


class BookingLifecycle:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Clock = system_clock,
        notifier: EmailNotifier | None = None,
        slots: SlotLockStore | None = None,
        payments: PaymentLedger | None = None,
        directory: VenueDirectory | None = None,
    ):
        self.uow_factory = uow_factory
        self.clock = clock
        self.notifier = notifier or EmailNotifier()
        self.slots = slots or SlotLockStore()
        self.payments = payments or PaymentLedger()
        self.directory = directory or VenueDirectory()

    def is_overdue(self, booking: Booking, now: datetime) -> bool:
        return now - as_utc(booking.created_at) > timedelta(minutes=settings.payment_window_minutes)

    async def confirm(self, booking_id: int, caller: Caller) -> None:
        now = self.clock.now()
        async with self.uow_factory() as uow:
            db = uow.session
            booking = await self._load_for_update(db, booking_id)
            if booking.user_id != caller.id:
                raise Unauthorized()
            if booking.status == BookingStatus.CANCELLED:
                raise AlreadyProcessed("This booking has already been cancelled")
            if booking.status != BookingStatus.COMPLETED and self.is_overdue(booking, now):
                await self._release(db, booking)
                await uow.commit()
                logger.warning("Booking %s expired before payment was confirmed", booking_id)
                raise PaymentOverdue("Payment window has passed; the booking was cancelled")
            if booking.status == BookingStatus.CONFIRMED:
                raise AlreadyConfirmed("This booking has already been confirmed")
            if booking.status == BookingStatus.COMPLETED:
                raise AlreadyCompleted("This booking has already been completed")

            booking.status = BookingStatus.CONFIRMED
            owner_email, notification = await self._payment_notification(db, booking)

        logger.info("Booking %s confirmed by user %s", booking_id, caller.id)
        dispatch_notification(self.notifier, owner_email, notification)

    async def complete(self, booking_id: int, caller: Caller) -> None:
        async with self.uow_factory() as uow:
            db = uow.session
            booking = await self._load_for_update(db, booking_id)
            owner_id = await self.directory.get_owner_id(db, booking.field_id)
            if owner_id != caller.id:
                raise Unauthorized()
            if booking.status == BookingStatus.COMPLETED:
                raise AlreadyCompleted("This booking has already been completed")
            if booking.status == BookingStatus.CANCELLED:
                raise AlreadyProcessed("This booking has already been cancelled")
            if booking.status != BookingStatus.CONFIRMED:
                raise InvalidTransition("Only confirmed bookings can be completed")

            booking.status = BookingStatus.COMPLETED
            await self.payments.update(db, booking.id, PaymentStatus.PAID)

        logger.info("Booking %s completed by owner %s", booking_id, caller.id)

    async def cancel(self, booking_id: int, caller: Caller) -> None:
        async with self.uow_factory() as uow:
            db = uow.session
            booking = await self._load_for_update(db, booking_id)
            owner_id = await self.directory.get_owner_id(db, booking.field_id)
            if caller.id not in (booking.user_id, owner_id):
                raise Unauthorized()
            if booking.status != BookingStatus.PENDING:
                raise NotCancellable(f"Only pending bookings can be cancelled (this one is {booking.status})")
            released = await self._release(db, booking)

        logger.info("Booking %s cancelled by user %s, %d slot(s) released", booking_id, caller.id, released)

    async def get_payment_qr_code(self, booking_id: int, caller: Caller) -> PaymentInstructions:
        now = self.clock.now()
        async with self.uow_factory() as uow:
            db = uow.session
            booking = await self._load_for_update(db, booking_id)
            if booking.user_id != caller.id:
                raise Unauthorized()
            if booking.status == BookingStatus.PENDING and self.is_overdue(booking, now):
                await self._release(db, booking)
                await uow.commit()
                logger.warning("Booking %s expired before the payment QR was fetched", booking_id)
                raise PaymentOverdue("Payment window has passed; the booking was cancelled")
            if booking.status != BookingStatus.PENDING:
                raise AlreadyProcessed(f"This booking has already been processed (status {booking.status})")

            field = await self.directory.get_field(db, booking.field_id)
            return payment_instructions(field.venue, booking.total_price, booking.id)

    async def expire_overdue(self) -> list[int]:
        """Cancel every pending booking past the payment window. Returns the cancelled ids."""
        cutoff = self.clock.now() - timedelta(minutes=settings.payment_window_minutes)
        async with self.uow_factory() as uow:
            db = uow.session
            result = await db.execute(
                select(Booking)
                .where(Booking.status == BookingStatus.PENDING, Booking.created_at < cutoff)
                .order_by(Booking.id)
                .with_for_update(skip_locked=True)
            )
            expired = list(result.scalars().all())
            for booking in expired:
                await self._release(db, booking)
            expired_ids = [booking.id for booking in expired]

        if expired_ids:
            logger.info("Expired %d overdue booking(s): %s", len(expired_ids), expired_ids)
        return expired_ids

    async def _load_for_update(self, db: AsyncSession, booking_id: int) -> Booking:
        result = await db.execute(select(Booking).where(Booking.id == booking_id).with_for_update())
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found")
        return booking

    async def _release(self, db: AsyncSession, booking: Booking) -> int:
        """Cancel the booking, fail its payment and free its court slots."""
        booking.status = BookingStatus.CANCELLED
        await self.payments.update(db, booking.id, PaymentStatus.FAILED)
        return await self.slots.delete_by_booking(db, booking.id)

    async def _payment_notification(self, db: AsyncSession, booking: Booking) -> tuple[str, PaymentNotification]:
        result = await db.execute(
            select(Field.name, Venue.name, User.email)
            .join(Venue, Field.venue_id == Venue.id)
            .join(User, Venue.owner_id == User.id)
            .where(Field.id == booking.field_id)
        )
        field_name, venue_name, owner_email = result.one()

        rows = await db.execute(
            select(BookingCourt.court_id, Court.name, BookingCourt.start_time, BookingCourt.end_time)
            .join(Court, BookingCourt.court_id == Court.id)
            .where(BookingCourt.booking_id == booking.id)
            .order_by(BookingCourt.id)
        )
        by_court = group_by_court(rows.all(), lambda row: row.court_id)
        courts = [
            CourtTimes(court_name=items[0].name, times=[str(TimeRange(row.start_time, row.end_time)) for row in items])
            for items in by_court.values()
        ]
        return owner_email, PaymentNotification(
            customer_name=booking.customer_name,
            customer_phone=booking.customer_phone,
            field_name=field_name,
            venue_name=venue_name,
            price=booking.total_price,
            message=payment_reference(booking.id),
            booking_date=booking.booking_date,
            courts=courts,
        )
