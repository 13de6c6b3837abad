"""Shared test fixtures.

Every test gets its own SQLite file database (via aiosqlite) with the full
schema, a unit-of-work factory with a fresh lock registry, and a clock pinned
to Monday 2026-03-16 08:00 venue time. Notifications still being sent are
waited for before the database goes away.
"""

from datetime import UTC, date, datetime, time, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sportbook.core.auth import Caller, Role
from sportbook.core.clock import FixedClock
from sportbook.core.unit_of_work import make_uow_factory
from sportbook.models import (
    Base,
    Court,
    CourtSpecialTime,
    Field,
    FieldOpeningHour,
    FieldPriceRule,
    User,
    Venue,
    VenueStatus,
)
from sportbook.services.email import drain_notifications

# 08:00 in Asia/Ho_Chi_Minh (UTC+7), a Monday
NOW = datetime(2026, 3, 16, 1, 0, tzinfo=UTC)
MONDAY = date(2026, 3, 16)
TUESDAY = MONDAY + timedelta(days=1)
SUNDAY = MONDAY + timedelta(days=6)


@pytest.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'sportbook.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await drain_notifications()
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def uow_factory(session_factory):
    return make_uow_factory(session_factory)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def notifier():
    mock = AsyncMock()
    mock.send = AsyncMock()
    return mock


@pytest.fixture
async def venue_data(session_factory):
    """One owner, two customers, an active venue with a two-court field and a locked venue.

    Field pricing:
      default   50,000 per 30 min, open 06:00-22:00 Monday to Saturday (closed Sunday)
      rule      Monday 17:00-22:00, 150,000 per 60 min
      special   court 1 on Tuesday 10:00-12:00, 300,000 per 120 min
    """
    async with session_factory() as db:
        owner = User(email="owner@sportbook.vn", full_name="Venue Owner", role=Role.OWNER)
        customer = User(email="customer@example.com", full_name="Nguyen Customer")
        stranger = User(email="stranger@example.com", full_name="Someone Else")
        db.add_all([owner, customer, stranger])
        await db.flush()

        venue = Venue(
            owner_id=owner.id,
            name="Hoa Binh Badminton",
            address="12 Nguyen Van Cu",
            bank_name="MB",
            bank_account_number="0123456789",
            bank_account_name="NGUYEN VAN A",
        )
        locked_venue = Venue(
            owner_id=owner.id,
            name="Closed Venue",
            status=VenueStatus.LOCKED,
            bank_name="VCB",
            bank_account_number="999",
        )
        db.add_all([venue, locked_venue])
        await db.flush()

        field = Field(venue_id=venue.id, name="Hall A", default_price=50_000)
        locked_field = Field(venue_id=locked_venue.id, name="Hall Z", default_price=10_000)
        db.add_all([field, locked_field])
        await db.flush()

        for day in range(6):
            db.add(FieldOpeningHour(field_id=field.id, day_of_week=day, opening_time=time(6), closing_time=time(22)))
            db.add(
                FieldOpeningHour(field_id=locked_field.id, day_of_week=day, opening_time=time(6), closing_time=time(22))
            )
        db.add(
            FieldPriceRule(
                field_id=field.id, day_of_week=0, start_time=time(17), end_time=time(22), price=150_000, min_rental=60
            )
        )

        court1 = Court(field_id=field.id, name="Court 1")
        court2 = Court(field_id=field.id, name="Court 2")
        other_court = Court(field_id=locked_field.id, name="Court Z")
        db.add_all([court1, court2, other_court])
        await db.flush()

        db.add(
            CourtSpecialTime(
                court_id=court1.id,
                special_date=TUESDAY,
                start_time=time(10),
                end_time=time(12),
                price=300_000,
                min_rental=120,
            )
        )
        await db.commit()

        return {
            "owner": Caller(owner.id, Role.OWNER),
            "customer": Caller(customer.id),
            "stranger": Caller(stranger.id),
            "owner_email": owner.email,
            "venue_id": venue.id,
            "field_id": field.id,
            "courts": [court1.id, court2.id],
            "locked_field_id": locked_field.id,
            "other_court_id": other_court.id,
        }
