"""Slot reservation: customer bookings and owner locks.

A booking request names a field, a date and any number of (court, time range)
pairs. Every pair is validated in input order; only when all of them pass is
anything written. The whole thing runs in one unit of work holding the
(court, date) locks for every court involved, so the overlap check and the
CourtSlot inserts cannot interleave with a competing request.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from sportbook.core.auth import Caller
from sportbook.core.clock import Clock, system_clock
from sportbook.core.config import settings
from sportbook.core.errors import InvalidRange, PastOrTooSoon, SlotUnavailable, Unauthorized
from sportbook.core.unit_of_work import UnitOfWorkFactory
from sportbook.models.booking import Booking, BookingCourt, BookingStatus
from sportbook.services.directory import VenueDirectory, ensure_courts_on_field
from sportbook.services.payments import PaymentInstructions, PaymentLedger, payment_instructions
from sportbook.services.pricing import PricingResolver, ResolvedPrice, slot_price
from sportbook.services.slot_locks import SlotLockStore
from sportbook.services.timeslots import TimeRange, ends_too_soon, ensure_positive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotRequest:
    court_id: int
    slot: TimeRange


@dataclass(frozen=True)
class BookingResult:
    booking_id: int
    total_price: int
    payment: PaymentInstructions


@dataclass
class LockResult:
    created: list[SlotRequest] = field(default_factory=list)
    already_locked: list[SlotRequest] = field(default_factory=list)
    conflicts: list[SlotRequest] = field(default_factory=list)


@dataclass(frozen=True)
class _PricedSlot:
    request: SlotRequest
    resolved: ResolvedPrice
    price: int


class ReservationEngine:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Clock = system_clock,
        pricing: PricingResolver | None = None,
        slots: SlotLockStore | None = None,
        payments: PaymentLedger | None = None,
        directory: VenueDirectory | None = None,
    ):
        self.uow_factory = uow_factory
        self.clock = clock
        self.pricing = pricing or PricingResolver()
        self.slots = slots or SlotLockStore()
        self.payments = payments or PaymentLedger()
        self.directory = directory or VenueDirectory()

    async def create_booking(
        self,
        caller: Caller,
        field_id: int,
        booking_date: date,
        customer_name: str,
        customer_phone: str,
        requests: Sequence[SlotRequest],
    ) -> BookingResult:
        if not requests:
            raise InvalidRange("At least one court time slot is required")

        now = self.clock.now()
        async with self.uow_factory() as uow:
            db = uow.session
            field_ = await self.directory.get_field(db, field_id, bookable_only=True)
            ensure_courts_on_field(field_, (r.court_id for r in requests))
            await uow.lock_court_dates((r.court_id, booking_date) for r in requests)

            priced: list[_PricedSlot] = []
            for request in requests:
                slot = request.slot
                if ends_too_soon(booking_date, slot, now, settings.tz, settings.booking_lead_minutes):
                    raise PastOrTooSoon(
                        f"Cannot book a court that ends in the past or within {settings.booking_lead_minutes} "
                        f"minutes (ends {booking_date.isoformat()} {slot.end.strftime('%H:%M')})"
                    )
                ensure_positive(slot)
                if await self._is_taken(db, request, booking_date, priced):
                    raise SlotUnavailable(
                        f"The requested time {slot} on court {request.court_id} is already booked or locked by the owner"
                    )
                resolved = await self.pricing.resolve(
                    db, request.court_id, field_, booking_date, booking_date.weekday(), slot
                )
                priced.append(_PricedSlot(request, resolved, slot_price(resolved, slot)))

            total_price = sum(p.price for p in priced)
            booking = Booking(
                field_id=field_.id,
                user_id=caller.id,
                total_price=total_price,
                customer_name=customer_name,
                customer_phone=customer_phone,
                booking_date=booking_date,
                status=BookingStatus.PENDING,
                created_at=now,
            )
            db.add(booking)
            await db.flush()

            for p in priced:
                booking_court = BookingCourt(
                    booking_id=booking.id,
                    court_id=p.request.court_id,
                    start_time=p.request.slot.start,
                    end_time=p.request.slot.end,
                    price=p.price,
                )
                db.add(booking_court)
                await db.flush()
                for cell in p.request.slot.split(p.resolved.min_rental):
                    await self.slots.create(db, p.request.court_id, booking_date, cell, booking_court_id=booking_court.id)
            await db.flush()

            instructions = payment_instructions(field_.venue, total_price, booking.id)
            await self.payments.create(db, booking.id, caller.id, total_price, instructions.message)
            booking_id = booking.id

        logger.info(
            "Booking %s created by user %s on field %s for %s: %d range(s), total %d",
            booking_id,
            caller.id,
            field_id,
            booking_date,
            len(priced),
            total_price,
        )
        return BookingResult(booking_id=booking_id, total_price=total_price, payment=instructions)

    async def _is_taken(self, db, request: SlotRequest, booking_date: date, accepted: list[_PricedSlot]) -> bool:
        # Ranges earlier in the same request are not in the database yet
        for p in accepted:
            if p.request.court_id == request.court_id and p.request.slot.overlaps(request.slot):
                return True
        return await self.slots.check_overlap(db, request.court_id, booking_date, request.slot)

    async def lock_slots(
        self, caller: Caller, field_id: int, lock_date: date, requests: Sequence[SlotRequest]
    ) -> LockResult:
        """Owner-side block of court time with no booking or payment attached.

        Malformed ranges abort the whole batch. Ranges that are already locked
        with the same bounds, or that collide with other reservations, are
        skipped and reported back; the rest are written.

        Each range is stored as a single row and is not checked against any
        min_rental, so an owner lock such as 13:10-13:50 can leave gaps around
        it that are too short for a customer to book.
        """
        if not requests:
            raise InvalidRange("At least one court time slot is required")

        result = LockResult()
        async with self.uow_factory() as uow:
            db = uow.session
            field_ = await self.directory.get_field(db, field_id)
            if field_.venue.owner_id != caller.id:
                raise Unauthorized("Only the venue owner can lock courts")
            ensure_courts_on_field(field_, (r.court_id for r in requests))
            for request in requests:
                ensure_positive(request.slot)

            await uow.lock_court_dates((r.court_id, lock_date) for r in requests)
            for request in requests:
                if await self.slots.exists(db, request.court_id, request.slot, lock_date):
                    result.already_locked.append(request)
                elif await self.slots.check_overlap(db, request.court_id, lock_date, request.slot):
                    result.conflicts.append(request)
                else:
                    await self.slots.create(db, request.court_id, lock_date, request.slot, locked_by_owner=True)
                    await db.flush()
                    result.created.append(request)

        logger.info(
            "Owner %s locked field %s on %s: %d created, %d already locked, %d conflicting",
            caller.id,
            field_id,
            lock_date,
            len(result.created),
            len(result.already_locked),
            len(result.conflicts),
        )
        return result

    async def is_slot_locked(self, court_id: int, slot_date: date, slot: TimeRange) -> bool:
        async with self.uow_factory() as uow:
            return await self.slots.check_overlap(uow.session, court_id, slot_date, slot)
