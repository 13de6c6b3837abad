"""Booking lifecycle: confirm, complete, cancel, QR payload, overdue expiry, display status."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

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
from sportbook.models import Booking, BookingStatus, CourtSlot, Payment, PaymentStatus
from sportbook.services.email import drain_notifications
from sportbook.services.lifecycle import BookingLifecycle, display_status
from sportbook.services.reservation import ReservationEngine, SlotRequest
from sportbook.services.timeslots import TimeRange

from tests.conftest import MONDAY, NOW


@pytest.fixture
def engine(uow_factory, clock):
    return ReservationEngine(uow_factory, clock=clock)


@pytest.fixture
def lifecycle(uow_factory, clock, notifier):
    return BookingLifecycle(uow_factory, clock=clock, notifier=notifier)


@pytest.fixture
async def booking_id(engine, venue_data):
    c1, c2 = venue_data["courts"]
    result = await engine.create_booking(
        venue_data["customer"],
        field_id=venue_data["field_id"],
        booking_date=MONDAY,
        customer_name="Nguyen Customer",
        customer_phone="0900000000",
        requests=[
            SlotRequest(c1, TimeRange.parse("09:00", "10:00")),
            SlotRequest(c2, TimeRange.parse("09:00", "09:30")),
            SlotRequest(c1, TimeRange.parse("11:00", "11:30")),
        ],
    )
    return result.booking_id


async def load(session_factory, booking_id):
    async with session_factory() as db:
        booking = await db.get(Booking, booking_id)
        payment = (await db.execute(select(Payment).where(Payment.booking_id == booking_id))).scalar_one()
        slots = (await db.execute(select(func.count()).select_from(CourtSlot))).scalar_one()
    return booking, payment, slots


class TestDisplayStatus:
    created = datetime(2026, 3, 16, 1, 0, tzinfo=UTC)

    def test_terminal_states(self):
        assert display_status(BookingStatus.CANCELLED, self.created, self.created) == "cancelled"
        assert display_status(BookingStatus.COMPLETED, self.created, self.created + timedelta(days=3)) == "completed"

    def test_recent_pending(self):
        now = self.created + timedelta(minutes=14)
        assert display_status(BookingStatus.PENDING, self.created, now, 15) == "awaiting payment"

    def test_recent_confirmed(self):
        now = self.created + timedelta(minutes=5)
        assert display_status(BookingStatus.CONFIRMED, self.created, now, 15) == "awaiting owner confirmation"

    def test_stale(self):
        now = self.created + timedelta(minutes=15)
        assert display_status(BookingStatus.PENDING, self.created, now, 15) == "expired"
        assert display_status(BookingStatus.CONFIRMED, self.created, now, 15) == "expired"

    def test_naive_created_at_is_utc(self):
        naive = self.created.replace(tzinfo=None)
        assert display_status(BookingStatus.PENDING, naive, self.created, 15) == "awaiting payment"


class TestConfirm:
    @pytest.mark.asyncio
    async def test_confirm_notifies_owner(self, lifecycle, booking_id, venue_data, session_factory, notifier):
        await lifecycle.confirm(booking_id, venue_data["customer"])
        await drain_notifications()

        booking, _, _ = await load(session_factory, booking_id)
        assert booking.status == BookingStatus.CONFIRMED

        notifier.send.assert_awaited_once()
        owner_email, notification = notifier.send.await_args.args
        assert owner_email == venue_data["owner_email"]
        assert notification.message == f"Thanh Toan Don {booking_id}"
        assert notification.price == 200_000
        assert [(c.court_name, c.times) for c in notification.courts] == [
            ("Court 1", ["09:00 - 10:00", "11:00 - 11:30"]),
            ("Court 2", ["09:00 - 09:30"]),
        ]

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_roll_back(self, lifecycle, booking_id, venue_data, session_factory, notifier):
        notifier.send.side_effect = ConnectionError("smtp down")
        await lifecycle.confirm(booking_id, venue_data["customer"])
        await drain_notifications()

        booking, _, _ = await load(session_factory, booking_id)
        assert booking.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_confirm_does_not_wait_for_mail_server(self, uow_factory, clock, booking_id, venue_data, session_factory):
        release = asyncio.Event()
        delivered = []

        class SlowNotifier:
            async def send(self, owner_email, notification):
                await release.wait()
                delivered.append(owner_email)

        lifecycle = BookingLifecycle(uow_factory, clock=clock, notifier=SlowNotifier())
        try:
            await asyncio.wait_for(lifecycle.confirm(booking_id, venue_data["customer"]), timeout=1)
            booking, _, _ = await load(session_factory, booking_id)
            assert booking.status == BookingStatus.CONFIRMED
            assert delivered == []
        finally:
            release.set()
        await drain_notifications()
        assert delivered == [venue_data["owner_email"]]

    @pytest.mark.asyncio
    async def test_only_creator_confirms(self, lifecycle, booking_id, venue_data):
        with pytest.raises(Unauthorized):
            await lifecycle.confirm(booking_id, venue_data["owner"])

    @pytest.mark.asyncio
    async def test_confirm_twice(self, lifecycle, booking_id, venue_data):
        await lifecycle.confirm(booking_id, venue_data["customer"])
        with pytest.raises(AlreadyConfirmed):
            await lifecycle.confirm(booking_id, venue_data["customer"])

    @pytest.mark.asyncio
    async def test_confirm_cancelled(self, lifecycle, booking_id, venue_data):
        await lifecycle.cancel(booking_id, venue_data["customer"])
        with pytest.raises(AlreadyProcessed):
            await lifecycle.confirm(booking_id, venue_data["customer"])

    @pytest.mark.asyncio
    async def test_overdue_confirm_cancels(self, lifecycle, booking_id, venue_data, session_factory, clock, notifier):
        clock.set(NOW + timedelta(minutes=31))
        with pytest.raises(PaymentOverdue):
            await lifecycle.confirm(booking_id, venue_data["customer"])

        booking, payment, slots = await load(session_factory, booking_id)
        assert booking.status == BookingStatus.CANCELLED
        assert payment.status == PaymentStatus.FAILED
        assert slots == 0
        notifier.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_overdue_reconfirm_cancels_confirmed(self, lifecycle, booking_id, venue_data, session_factory, clock):
        await lifecycle.confirm(booking_id, venue_data["customer"])
        clock.set(NOW + timedelta(minutes=31))
        with pytest.raises(PaymentOverdue):
            await lifecycle.confirm(booking_id, venue_data["customer"])

        booking, _, slots = await load(session_factory, booking_id)
        assert booking.status == BookingStatus.CANCELLED
        assert slots == 0

    @pytest.mark.asyncio
    async def test_confirm_at_window_edge(self, lifecycle, booking_id, venue_data, session_factory, clock):
        clock.set(NOW + timedelta(minutes=30))
        await lifecycle.confirm(booking_id, venue_data["customer"])
        booking, _, _ = await load(session_factory, booking_id)
        assert booking.status == BookingStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_unknown_booking(self, lifecycle, venue_data):
        with pytest.raises(NotFound):
            await lifecycle.confirm(9999, venue_data["customer"])


class TestComplete:
    @pytest.mark.asyncio
    async def test_owner_completes_confirmed(self, lifecycle, booking_id, venue_data, session_factory):
        await lifecycle.confirm(booking_id, venue_data["customer"])
        await lifecycle.complete(booking_id, venue_data["owner"])

        booking, payment, slots = await load(session_factory, booking_id)
        assert booking.status == BookingStatus.COMPLETED
        assert payment.status == PaymentStatus.PAID
        assert slots == 4

    @pytest.mark.asyncio
    async def test_pending_cannot_complete(self, lifecycle, booking_id, venue_data):
        with pytest.raises(InvalidTransition):
            await lifecycle.complete(booking_id, venue_data["owner"])

    @pytest.mark.asyncio
    async def test_complete_twice(self, lifecycle, booking_id, venue_data):
        await lifecycle.confirm(booking_id, venue_data["customer"])
        await lifecycle.complete(booking_id, venue_data["owner"])
        with pytest.raises(AlreadyCompleted):
            await lifecycle.complete(booking_id, venue_data["owner"])

    @pytest.mark.asyncio
    async def test_complete_cancelled(self, lifecycle, booking_id, venue_data):
        await lifecycle.cancel(booking_id, venue_data["owner"])
        with pytest.raises(AlreadyProcessed):
            await lifecycle.complete(booking_id, venue_data["owner"])

    @pytest.mark.asyncio
    async def test_customer_cannot_complete(self, lifecycle, booking_id, venue_data):
        await lifecycle.confirm(booking_id, venue_data["customer"])
        with pytest.raises(Unauthorized):
            await lifecycle.complete(booking_id, venue_data["customer"])


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_releases_slots(self, lifecycle, engine, booking_id, venue_data, session_factory):
        await lifecycle.cancel(booking_id, venue_data["customer"])

        booking, payment, slots = await load(session_factory, booking_id)
        assert booking.status == BookingStatus.CANCELLED
        assert payment.status == PaymentStatus.FAILED
        assert slots == 0

        c1, _ = venue_data["courts"]
        assert not await engine.is_slot_locked(c1, MONDAY, TimeRange.parse("09:00", "10:00"))

    @pytest.mark.asyncio
    async def test_owner_can_cancel(self, lifecycle, booking_id, venue_data, session_factory):
        await lifecycle.cancel(booking_id, venue_data["owner"])
        booking, _, _ = await load(session_factory, booking_id)
        assert booking.status == BookingStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_stranger_cannot_cancel(self, lifecycle, booking_id, venue_data):
        with pytest.raises(Unauthorized):
            await lifecycle.cancel(booking_id, venue_data["stranger"])

    @pytest.mark.asyncio
    async def test_confirmed_not_cancellable(self, lifecycle, booking_id, venue_data):
        await lifecycle.confirm(booking_id, venue_data["customer"])
        with pytest.raises(NotCancellable):
            await lifecycle.cancel(booking_id, venue_data["customer"])


class TestPaymentQRCode:
    @pytest.mark.asyncio
    async def test_pending_returns_instructions(self, lifecycle, booking_id, venue_data):
        qr = await lifecycle.get_payment_qr_code(booking_id, venue_data["customer"])
        assert qr.amount == 200_000
        assert qr.bank_name == "MB"
        assert qr.message == f"Thanh Toan Don {booking_id}"
        assert "amount=200000" in qr.qr_url

    @pytest.mark.asyncio
    async def test_overdue(self, lifecycle, booking_id, venue_data, session_factory, clock):
        clock.set(NOW + timedelta(hours=1))
        with pytest.raises(PaymentOverdue):
            await lifecycle.get_payment_qr_code(booking_id, venue_data["customer"])
        booking, _, _ = await load(session_factory, booking_id)
        assert booking.status == BookingStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_confirmed_has_no_qr(self, lifecycle, booking_id, venue_data):
        await lifecycle.confirm(booking_id, venue_data["customer"])
        with pytest.raises(AlreadyProcessed):
            await lifecycle.get_payment_qr_code(booking_id, venue_data["customer"])

    @pytest.mark.asyncio
    async def test_other_user(self, lifecycle, booking_id, venue_data):
        with pytest.raises(Unauthorized):
            await lifecycle.get_payment_qr_code(booking_id, venue_data["stranger"])


class TestExpireOverdue:
    @pytest.mark.asyncio
    async def test_only_old_pending_bookings(self, lifecycle, engine, booking_id, venue_data, session_factory, clock):
        _, c2 = venue_data["courts"]
        clock.set(NOW + timedelta(minutes=20))
        fresh = await engine.create_booking(
            venue_data["stranger"],
            field_id=venue_data["field_id"],
            booking_date=MONDAY,
            customer_name="Someone Else",
            customer_phone="0911111111",
            requests=[SlotRequest(c2, TimeRange.parse("15:00", "16:00"))],
        )

        clock.set(NOW + timedelta(minutes=40))
        expired = await lifecycle.expire_overdue()

        assert expired == [booking_id]
        old, _, slots = await load(session_factory, booking_id)
        new, _, _ = await load(session_factory, fresh.booking_id)
        assert old.status == BookingStatus.CANCELLED
        assert new.status == BookingStatus.PENDING
        assert slots == 2

    @pytest.mark.asyncio
    async def test_confirmed_bookings_are_left_alone(self, lifecycle, booking_id, venue_data, clock):
        await lifecycle.confirm(booking_id, venue_data["customer"])
        clock.set(NOW + timedelta(hours=2))
        assert await lifecycle.expire_overdue() == []
