"""Read models: booking listings for customers and owners, owner revenue and
the monthly venue rankings.

Nothing here writes. Relationships are loaded explicitly with selectinload since
lazy loading is not available on async sessions.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time

from sqlalchemy import case, extract, func, select
from sqlalchemy.orm import selectinload

from sportbook.core.auth import Caller
from sportbook.core.clock import Clock, as_utc, system_clock
from sportbook.core.config import settings
from sportbook.core.unit_of_work import UnitOfWorkFactory
from sportbook.models.booking import Booking, BookingCourt, BookingStatus
from sportbook.models.venue import Court, Field, Venue
from sportbook.services.lifecycle import display_status
from sportbook.services.payments import payment_reference


@dataclass
class CourtSlotView:
    court_id: int
    court_name: str
    start_time: time
    end_time: time
    price: int


@dataclass
class UserBookingView:
    id: int
    venue_name: str
    venue_address: str | None
    field_name: str
    booking_date: date
    total_price: int
    status: str
    display_status: str
    created_at: datetime
    courts: list[CourtSlotView] = field(default_factory=list)


@dataclass
class OwnerBookingView:
    id: int
    message: str
    customer_name: str
    customer_phone: str
    venue_name: str
    field_name: str
    booking_date: date
    total_price: int
    status: str
    display_status: str
    created_at: datetime
    courts: list[CourtSlotView] = field(default_factory=list)


@dataclass
class OwnerBookingPage:
    items: list[OwnerBookingView]
    page: int
    per_page: int
    total: int
    pages: int
    total_completed_price: int


@dataclass
class UserHistoryItem:
    id: int
    booking_date: date
    total_price: int
    status: str
    display_status: str
    created_at: datetime


@dataclass
class UserBookingPage:
    items: list[UserHistoryItem]
    page: int
    per_page: int
    total: int
    pages: int
    total_completed_price: int


@dataclass
class CourtRevenue:
    court_id: int
    court_name: str
    revenue: int = 0


@dataclass
class FieldRevenue:
    field_id: int
    field_name: str
    revenue: int = 0
    courts: list[CourtRevenue] = field(default_factory=list)


@dataclass
class VenueRevenue:
    venue_id: int
    venue_name: str
    revenue: int = 0
    fields: list[FieldRevenue] = field(default_factory=list)


@dataclass
class RevenueStats:
    year: int
    month: int | None
    total_revenue: int
    venues: list[VenueRevenue]


@dataclass
class VenueRanking:
    venue_id: int
    venue_name: str
    revenue: int  # completed bookings only
    bookings: int  # every booking that was not cancelled


def _pages(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if total else 0


def _court_views(booking: Booking) -> list[CourtSlotView]:
    return [
        CourtSlotView(
            court_id=bc.court_id,
            court_name=bc.court.name,
            start_time=bc.start_time,
            end_time=bc.end_time,
            price=bc.price,
        )
        for bc in booking.booking_courts
    ]


_BOOKING_LOAD = (
    selectinload(Booking.field).selectinload(Field.venue),
    selectinload(Booking.booking_courts).selectinload(BookingCourt.court),
)


class BookingReports:
    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Clock = system_clock):
        self.uow_factory = uow_factory
        self.clock = clock

    async def list_user_bookings(self, caller: Caller) -> list[UserBookingView]:
        now = self.clock.now()
        async with self.uow_factory() as uow:
            result = await uow.session.execute(
                select(Booking)
                .options(*_BOOKING_LOAD)
                .where(Booking.user_id == caller.id)
                .order_by(Booking.created_at.desc(), Booking.id.desc())
            )
            bookings = list(result.scalars().all())

        return [
            UserBookingView(
                id=b.id,
                venue_name=b.field.venue.name,
                venue_address=b.field.venue.address,
                field_name=b.field.name,
                booking_date=b.booking_date,
                total_price=b.total_price,
                status=str(b.status),
                display_status=display_status(b.status, b.created_at, now),
                created_at=as_utc(b.created_at),
                courts=_court_views(b),
            )
            for b in bookings
        ]

    async def list_owner_bookings(self, caller: Caller, page: int = 1, per_page: int | None = None) -> OwnerBookingPage:
        per_page = per_page or settings.owner_bookings_page_size
        page = max(page, 1)
        now = self.clock.now()
        owned = (
            select(Field.id)
            .join(Venue, Field.venue_id == Venue.id)
            .where(Venue.owner_id == caller.id, Venue.deleted_at.is_(None))
        )
        async with self.uow_factory() as uow:
            db = uow.session
            total = (await db.execute(select(func.count(Booking.id)).where(Booking.field_id.in_(owned)))).scalar_one()
            result = await db.execute(
                select(Booking)
                .options(*_BOOKING_LOAD)
                .where(Booking.field_id.in_(owned))
                .order_by(Booking.created_at.desc(), Booking.id.desc())
                .offset((page - 1) * per_page)
                .limit(per_page)
            )
            bookings = list(result.scalars().all())

        items = [
            OwnerBookingView(
                id=b.id,
                message=payment_reference(b.id),
                customer_name=b.customer_name,
                customer_phone=b.customer_phone,
                venue_name=b.field.venue.name,
                field_name=b.field.name,
                booking_date=b.booking_date,
                total_price=b.total_price,
                status=str(b.status),
                display_status=display_status(b.status, b.created_at, now),
                created_at=as_utc(b.created_at),
                courts=_court_views(b),
            )
            for b in bookings
        ]
        return OwnerBookingPage(
            items=items,
            page=page,
            per_page=per_page,
            total=total,
            pages=_pages(total, per_page),
            total_completed_price=sum(b.total_price for b in bookings if b.status == BookingStatus.COMPLETED),
        )

    async def revenue_stats(self, caller: Caller, month: int | None = None, year: int | None = None) -> RevenueStats:
        """Completed-booking revenue per court, rolled up by field and venue.

        Every court of every owned venue is listed, with zero revenue if nothing
        was completed in the period.
        """
        year = year or self.clock.now().astimezone(settings.tz).year
        filters = [
            Booking.status == BookingStatus.COMPLETED,
            extract("year", Booking.booking_date) == year,
        ]
        if month is not None:
            filters.append(extract("month", Booking.booking_date) == month)

        async with self.uow_factory() as uow:
            db = uow.session
            venues = (
                await db.execute(
                    select(Venue)
                    .options(selectinload(Venue.fields).selectinload(Field.courts))
                    .where(Venue.owner_id == caller.id, Venue.deleted_at.is_(None))
                    .order_by(Venue.id)
                )
            ).scalars().all()
            rows = await db.execute(
                select(BookingCourt.court_id, func.sum(BookingCourt.price))
                .join(Booking, BookingCourt.booking_id == Booking.id)
                .join(Court, BookingCourt.court_id == Court.id)
                .join(Field, Court.field_id == Field.id)
                .join(Venue, Field.venue_id == Venue.id)
                .where(Venue.owner_id == caller.id, *filters)
                .group_by(BookingCourt.court_id)
            )
            by_court = {court_id: int(revenue or 0) for court_id, revenue in rows.all()}

        venue_stats = []
        for venue in venues:
            venue_stat = VenueRevenue(venue_id=venue.id, venue_name=venue.name)
            for field_ in venue.fields:
                field_stat = FieldRevenue(field_id=field_.id, field_name=field_.name)
                for court in field_.courts:
                    revenue = by_court.get(court.id, 0)
                    field_stat.courts.append(CourtRevenue(court_id=court.id, court_name=court.name, revenue=revenue))
                    field_stat.revenue += revenue
                venue_stat.fields.append(field_stat)
                venue_stat.revenue += field_stat.revenue
            venue_stats.append(venue_stat)

        return RevenueStats(
            year=year,
            month=month,
            total_revenue=sum(v.revenue for v in venue_stats),
            venues=venue_stats,
        )

    async def user_booking_stats(self, caller: Caller, page: int = 1, per_page: int | None = None) -> UserBookingPage:
        """Paginated booking history with the completed total for the page.

        Open bookings read as expired once the payment window has passed.
        """
        per_page = per_page or settings.user_bookings_page_size
        page = max(page, 1)
        now = self.clock.now()
        async with self.uow_factory() as uow:
            db = uow.session
            total = (await db.execute(select(func.count(Booking.id)).where(Booking.user_id == caller.id))).scalar_one()
            result = await db.execute(
                select(Booking)
                .where(Booking.user_id == caller.id)
                .order_by(Booking.created_at.desc(), Booking.id.desc())
                .offset((page - 1) * per_page)
                .limit(per_page)
            )
            bookings = list(result.scalars().all())

        items = [
            UserHistoryItem(
                id=b.id,
                booking_date=b.booking_date,
                total_price=b.total_price,
                status=str(b.status),
                display_status=display_status(b.status, b.created_at, now, settings.payment_window_minutes),
                created_at=as_utc(b.created_at),
            )
            for b in bookings
        ]
        return UserBookingPage(
            items=items,
            page=page,
            per_page=per_page,
            total=total,
            pages=_pages(total, per_page),
            total_completed_price=sum(b.total_price for b in bookings if b.status == BookingStatus.COMPLETED),
        )

    async def top_venues_by_revenue(self, caller: Caller) -> list[VenueRanking]:
        return await self._top_venues(caller, by_revenue=True)

    async def top_venues_by_bookings(self, caller: Caller) -> list[VenueRanking]:
        return await self._top_venues(caller, by_revenue=False)

    async def _top_venues(self, caller: Caller, by_revenue: bool) -> list[VenueRanking]:
        """The caller's best venues for the current venue-local month."""
        today = self.clock.now().astimezone(settings.tz)
        revenue = func.coalesce(
            func.sum(case((Booking.status == BookingStatus.COMPLETED, Booking.total_price), else_=0)), 0
        )
        bookings = func.count(Booking.id)
        metric = revenue if by_revenue else bookings

        async with self.uow_factory() as uow:
            rows = await uow.session.execute(
                select(Venue.id, Venue.name, revenue, bookings)
                .join(Field, Field.venue_id == Venue.id)
                .join(Booking, Booking.field_id == Field.id)
                .where(
                    Venue.owner_id == caller.id,
                    Venue.deleted_at.is_(None),
                    Booking.status != BookingStatus.CANCELLED,
                    extract("year", Booking.booking_date) == today.year,
                    extract("month", Booking.booking_date) == today.month,
                )
                .group_by(Venue.id, Venue.name)
                .order_by(metric.desc(), Venue.id)
                .limit(settings.top_venues_limit)
            )
            return [
                VenueRanking(venue_id=venue_id, venue_name=name, revenue=int(total), bookings=count)
                for venue_id, name, total, count in rows.all()
            ]
