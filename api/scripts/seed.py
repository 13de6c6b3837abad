"""Seed the database with a demo venue for local development.

Run with: python -m scripts.seed
Creates an owner and a customer, one badminton venue with a field of four
courts, opening hours for every day, evening price rules and a special-time
override, then prints bearer tokens for both users.
"""

import asyncio
from datetime import date, time, timedelta

from sqlalchemy import select

from sportbook.core.auth import Role, create_access_token
from sportbook.core.database import async_session_factory, engine
from sportbook.models import (
    Base,
    Court,
    CourtSpecialTime,
    Field,
    FieldOpeningHour,
    FieldPriceRule,
    User,
    Venue,
)

VENUE = {
    "name": "Sân Cầu Lông Hòa Bình",
    "address": "12 Nguyễn Văn Cừ, Quận 5, TP. Hồ Chí Minh",
    "latitude": 10.7584,
    "longitude": 106.6822,
    "bank_name": "MB",
    "bank_account_number": "0123456789",
    "bank_account_name": "NGUYEN VAN A",
}

FIELD = {"name": "Badminton Hall A", "default_price": 50_000}
COURTS = ["Court 1", "Court 2", "Court 3", "Court 4"]

OPENING = (time(6, 0), time(22, 0))

# Weekday evenings and weekend days are priced higher, per 60 minutes
PRICE_RULES = [
    *[{"day_of_week": d, "start_time": time(17, 0), "end_time": time(22, 0), "price": 150_000, "min_rental": 60}
      for d in range(5)],
    *[{"day_of_week": d, "start_time": time(6, 0), "end_time": time(22, 0), "price": 140_000, "min_rental": 60}
      for d in (5, 6)],
]

USERS = [
    {"email": "owner@sportbook.vn", "full_name": "Nguyen Van A", "role": Role.OWNER},
    {"email": "customer@example.com", "full_name": "Tran Thi B", "role": Role.CUSTOMER},
]


async def seed():
    # Create tables (in dev; production uses migrations)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        # Check if already seeded
        result = await db.execute(select(User).where(User.email == USERS[0]["email"]))
        if result.scalar_one_or_none():
            print("Database already seeded - skipping.")
            return

        users = {}
        for user_data in USERS:
            user = User(**user_data)
            db.add(user)
            await db.flush()
            users[user.role] = user

        owner = users[Role.OWNER]
        venue = Venue(owner_id=owner.id, **VENUE)
        db.add(venue)
        await db.flush()

        field = Field(venue_id=venue.id, **FIELD)
        db.add(field)
        await db.flush()

        for day in range(7):
            db.add(FieldOpeningHour(field_id=field.id, day_of_week=day, opening_time=OPENING[0], closing_time=OPENING[1]))
        for rule in PRICE_RULES:
            db.add(FieldPriceRule(field_id=field.id, **rule))

        courts = [Court(field_id=field.id, name=name) for name in COURTS]
        db.add_all(courts)
        await db.flush()

        # Tournament block on court 1 next Saturday, sold whole
        today = date.today()
        saturday = today + timedelta(days=(5 - today.weekday()) % 7 or 7)
        db.add(CourtSpecialTime(
            court_id=courts[0].id,
            special_date=saturday,
            start_time=time(8, 0),
            end_time=time(11, 0),
            price=400_000,
            min_rental=180,
        ))

        await db.commit()

        print(f"Seeded: {venue.name}")
        print(f"  field {field.id} '{field.name}' with {len(courts)} courts")
        print(f"  {len(PRICE_RULES)} price rules, special time on {saturday.isoformat()}")
        print("  Bearer tokens:")
        for user in users.values():
            token = create_access_token(str(user.id), {"role": str(user.role)})
            print(f"    {user.role} ({user.email}): {token}")


if __name__ == "__main__":
    asyncio.run(seed())
