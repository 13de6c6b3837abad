"""Price tier resolution: special time, weekly rule, field default."""

from datetime import time
from types import SimpleNamespace

import pytest

from sportbook.core.errors import ConfigurationMissing, InvalidGranularity, InvalidRange, RangeMismatch
from sportbook.models import Field
from sportbook.services.pricing import (
    TIER_DEFAULT,
    TIER_RULE,
    TIER_SPECIAL,
    PricingResolver,
    ResolvedPrice,
    slot_price,
)
from sportbook.services.timeslots import TimeRange

from tests.conftest import MONDAY, SUNDAY, TUESDAY


class TestSlotPrice:
    def test_units_times_price(self):
        resolved = ResolvedPrice(price=150_000, min_rental=60, open_time=time(17), close_time=time(22), tier=TIER_RULE)
        assert slot_price(resolved, TimeRange.parse("18:00", "20:00")) == 300_000

    def test_boundary(self):
        resolved = ResolvedPrice(price=1, min_rental=30, open_time=time(6), close_time=time(22), tier=TIER_DEFAULT)
        assert resolved.boundary == TimeRange(time(6), time(22))


async def _resolve(session_factory, data, court_index, day, start, end, resolver=None):
    resolver = resolver or PricingResolver()
    async with session_factory() as db:
        field = await db.get(Field, data["field_id"])
        return await resolver.resolve(
            db, data["courts"][court_index], field, day, day.weekday(), TimeRange.parse(start, end)
        )


class TestTiers:
    @pytest.mark.asyncio
    async def test_special_time_wins(self, session_factory, venue_data):
        resolved = await _resolve(session_factory, venue_data, 0, TUESDAY, "10:00", "12:00")
        assert resolved.tier == TIER_SPECIAL
        assert (resolved.price, resolved.min_rental) == (300_000, 120)

    @pytest.mark.asyncio
    async def test_special_time_must_be_booked_whole(self, session_factory, venue_data):
        with pytest.raises(RangeMismatch):
            await _resolve(session_factory, venue_data, 0, TUESDAY, "10:00", "11:00")

    @pytest.mark.asyncio
    async def test_straddling_special_time_is_refused(self, session_factory, venue_data):
        with pytest.raises(RangeMismatch):
            await _resolve(session_factory, venue_data, 0, TUESDAY, "09:00", "11:00")

    @pytest.mark.asyncio
    async def test_ending_inside_special_time_is_refused(self, session_factory, venue_data):
        with pytest.raises(RangeMismatch):
            await _resolve(session_factory, venue_data, 0, TUESDAY, "11:00", "11:30")

    @pytest.mark.asyncio
    async def test_adjacent_to_special_time_uses_default(self, session_factory, venue_data):
        resolved = await _resolve(session_factory, venue_data, 0, TUESDAY, "09:00", "10:00")
        assert resolved.tier == TIER_DEFAULT

    @pytest.mark.asyncio
    async def test_special_time_is_per_court(self, session_factory, venue_data):
        resolved = await _resolve(session_factory, venue_data, 1, TUESDAY, "10:00", "11:00")
        assert resolved.tier == TIER_DEFAULT

    @pytest.mark.asyncio
    async def test_rule_covering_request(self, session_factory, venue_data):
        resolved = await _resolve(session_factory, venue_data, 0, MONDAY, "18:00", "20:00")
        assert resolved.tier == TIER_RULE
        assert resolved.boundary == TimeRange.parse("17:00", "22:00")

    @pytest.mark.asyncio
    async def test_rule_gap_is_measured_from_rule_start(self, session_factory, venue_data):
        with pytest.raises(InvalidGranularity, match="Gap from 17:00"):
            await _resolve(session_factory, venue_data, 0, MONDAY, "17:30", "18:30")

    @pytest.mark.asyncio
    async def test_rule_gap_against_opening_hours(self, session_factory, venue_data):
        resolver = PricingResolver(rule_gap_boundary="opening_hours")
        resolved = await _resolve(session_factory, venue_data, 0, MONDAY, "18:00", "19:00", resolver)
        assert resolved.tier == TIER_RULE
        assert resolved.boundary == TimeRange.parse("06:00", "22:00")

    @pytest.mark.asyncio
    async def test_partly_covered_falls_back_to_default(self, session_factory, venue_data):
        resolved = await _resolve(session_factory, venue_data, 0, MONDAY, "16:00", "18:00")
        assert resolved.tier == TIER_DEFAULT
        assert (resolved.price, resolved.min_rental) == (50_000, 30)

    @pytest.mark.asyncio
    async def test_outside_opening_hours(self, session_factory, venue_data):
        with pytest.raises(InvalidRange):
            await _resolve(session_factory, venue_data, 0, MONDAY, "05:00", "06:00")

    @pytest.mark.asyncio
    async def test_no_opening_hours(self, session_factory, venue_data):
        with pytest.raises(ConfigurationMissing, match="Sunday"):
            await _resolve(session_factory, venue_data, 0, SUNDAY, "09:00", "10:00")

    @pytest.mark.asyncio
    async def test_non_positive_min_rental(self, session_factory, venue_data):
        resolver = PricingResolver(default_min_rental=0)
        with pytest.raises(ConfigurationMissing):
            await _resolve(session_factory, venue_data, 0, MONDAY, "09:00", "10:00", resolver)

    @pytest.mark.asyncio
    async def test_default_uses_field_object(self, session_factory, venue_data):
        resolver = PricingResolver(default_min_rental=60)
        field = SimpleNamespace(id=venue_data["field_id"], default_price=80_000)
        async with session_factory() as db:
            resolved = await resolver.resolve(
                db, venue_data["courts"][1], field, MONDAY, 0, TimeRange.parse("09:00", "11:00")
            )
        assert resolved.tier == TIER_DEFAULT
        assert slot_price(resolved, TimeRange.parse("09:00", "11:00")) == 160_000
