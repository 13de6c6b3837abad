"""Price resolution for a requested court slot.

Three tiers, first match wins:
  1. special  - a CourtSpecialTime for this court/date matching the request
                exactly. Any other overlap with a special time is refused.
  2. rule     - a FieldPriceRule for the field/day that fully covers the request.
  3. default  - the field's default price per default min_rental, bounded by
                the field's opening hours for the day.

Whatever tier wins, the request must sit inside the tier boundary and cut it
into whole min_rental units (see timeslots.check_rental_conditions).
"""

from dataclasses import dataclass
from datetime import date, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sportbook.core.config import settings
from sportbook.core.errors import ConfigurationMissing, InvalidRange, RangeMismatch
from sportbook.models.venue import CourtSpecialTime, Field, FieldOpeningHour, FieldPriceRule
from sportbook.services.timeslots import TimeRange, check_rental_conditions

TIER_SPECIAL = "special"
TIER_RULE = "rule"
TIER_DEFAULT = "default"

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


@dataclass(frozen=True)
class ResolvedPrice:
    price: int  # per min_rental unit
    min_rental: int  # minutes
    open_time: time
    close_time: time
    tier: str

    @property
    def boundary(self) -> TimeRange:
        return TimeRange(self.open_time, self.close_time)


def slot_price(resolved: ResolvedPrice, slot: TimeRange) -> int:
    """(duration / min_rental) x unit price. Duration is already known to be divisible."""
    return slot.minutes // resolved.min_rental * resolved.price


async def get_opening_hours(db: AsyncSession, field_id: int, day_of_week: int) -> TimeRange | None:
    result = await db.execute(
        select(FieldOpeningHour).where(
            FieldOpeningHour.field_id == field_id,
            FieldOpeningHour.day_of_week == day_of_week,
        )
    )
    hours = result.scalar_one_or_none()
    if hours is None:
        return None
    return TimeRange(hours.opening_time, hours.closing_time)


class PricingResolver:
    def __init__(self, default_min_rental: int | None = None, rule_gap_boundary: str | None = None):
        self.default_min_rental = settings.default_min_rental if default_min_rental is None else default_min_rental
        self.rule_gap_boundary = rule_gap_boundary or settings.rule_gap_boundary

    async def resolve(
        self,
        db: AsyncSession,
        court_id: int,
        field: Field,
        booking_date: date,
        day_of_week: int,
        slot: TimeRange,
    ) -> ResolvedPrice:
        resolved = await self._special_time(db, court_id, booking_date, slot)
        if resolved is None:
            resolved = await self._price_rule(db, field.id, day_of_week, slot)
        if resolved is None:
            resolved = await self._field_default(db, field, day_of_week)

        if resolved.min_rental <= 0:
            raise ConfigurationMissing(f"Invalid min_rental {resolved.min_rental} for {resolved.tier} pricing")
        if not resolved.boundary.contains(slot):
            raise InvalidRange(f"Requested time {slot} is outside the bookable hours {resolved.boundary}")
        check_rental_conditions(slot, resolved.min_rental, resolved.boundary)
        return resolved

    async def _special_time(
        self, db: AsyncSession, court_id: int, booking_date: date, slot: TimeRange
    ) -> ResolvedPrice | None:
        result = await db.execute(
            select(CourtSpecialTime)
            .where(
                CourtSpecialTime.court_id == court_id,
                CourtSpecialTime.special_date == booking_date,
                CourtSpecialTime.start_time < slot.end,
                CourtSpecialTime.end_time > slot.start,
            )
            .order_by(CourtSpecialTime.start_time)
        )
        overlapping = result.scalars().all()
        if not overlapping:
            return None
        special = overlapping[0]
        if len(overlapping) > 1 or (special.start_time, special.end_time) != (slot.start, slot.end):
            # Special ranges are sold whole or not at all
            raise RangeMismatch(
                f"Time period mismatch: special time {TimeRange(special.start_time, special.end_time)} "
                f"cannot be booked as {slot}"
            )
        return ResolvedPrice(
            price=special.price,
            min_rental=special.min_rental,
            open_time=special.start_time,
            close_time=special.end_time,
            tier=TIER_SPECIAL,
        )

    async def _price_rule(
        self, db: AsyncSession, field_id: int, day_of_week: int, slot: TimeRange
    ) -> ResolvedPrice | None:
        result = await db.execute(
            select(FieldPriceRule)
            .where(
                FieldPriceRule.field_id == field_id,
                FieldPriceRule.day_of_week == day_of_week,
                FieldPriceRule.start_time <= slot.start,
                FieldPriceRule.end_time >= slot.end,
            )
            .order_by(FieldPriceRule.start_time)
            .limit(1)
        )
        rule = result.scalar_one_or_none()
        if rule is None:
            return None

        boundary = TimeRange(rule.start_time, rule.end_time)
        if self.rule_gap_boundary == "opening_hours":
            hours = await get_opening_hours(db, field_id, day_of_week)
            if hours is None:
                raise ConfigurationMissing(f"Field opening hours not found for {DAY_NAMES[day_of_week]}")
            boundary = hours
        return ResolvedPrice(
            price=rule.price,
            min_rental=rule.min_rental,
            open_time=boundary.start,
            close_time=boundary.end,
            tier=TIER_RULE,
        )

    async def _field_default(self, db: AsyncSession, field: Field, day_of_week: int) -> ResolvedPrice:
        hours = await get_opening_hours(db, field.id, day_of_week)
        if hours is None:
            raise ConfigurationMissing(f"Field opening hours not found for {DAY_NAMES[day_of_week]}")
        return ResolvedPrice(
            price=field.default_price,
            min_rental=self.default_min_rental,
            open_time=hours.start,
            close_time=hours.end,
            tier=TIER_DEFAULT,
        )
