"""CourtSlot storage: the reservation cells checked for double booking.

Callers must hold the (court, date) lock from the unit of work before calling
check_overlap() and then inserting, otherwise two requests can both pass the
check.
"""

from collections.abc import Iterable
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sportbook.models.booking import BookingCourt, CourtSlot
from sportbook.services.timeslots import TimeRange


class SlotLockStore:
    async def check_overlap(self, db: AsyncSession, court_id: int, slot_date: date, slot: TimeRange) -> bool:
        """True if any reserved or owner-locked cell on this court/date overlaps the range."""
        result = await db.execute(
            select(CourtSlot.id)
            .where(
                CourtSlot.court_id == court_id,
                CourtSlot.slot_date == slot_date,
                CourtSlot.start_time < slot.end,
                CourtSlot.end_time > slot.start,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def exists(self, db: AsyncSession, court_id: int, slot: TimeRange, slot_date: date) -> bool:
        """True if a cell with exactly this range already exists."""
        result = await db.execute(
            select(CourtSlot.id)
            .where(
                CourtSlot.court_id == court_id,
                CourtSlot.slot_date == slot_date,
                CourtSlot.start_time == slot.start,
                CourtSlot.end_time == slot.end,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def create(
        self,
        db: AsyncSession,
        court_id: int,
        slot_date: date,
        slot: TimeRange,
        booking_court_id: int | None = None,
        locked_by_owner: bool = False,
    ) -> CourtSlot:
        court_slot = CourtSlot(
            court_id=court_id,
            booking_court_id=booking_court_id,
            slot_date=slot_date,
            start_time=slot.start,
            end_time=slot.end,
            is_locked=True,
            locked_by_owner=locked_by_owner,
        )
        db.add(court_slot)
        return court_slot

    async def delete_by_booking(self, db: AsyncSession, booking_id: int) -> int:
        """Release every cell reserved by a booking. Returns the number of rows deleted."""
        booking_court_ids = select(BookingCourt.id).where(BookingCourt.booking_id == booking_id)
        result = await db.execute(
            delete(CourtSlot)
            .where(CourtSlot.booking_court_id.in_(booking_court_ids))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def locked_ranges(
        self, db: AsyncSession, court_ids: Iterable[int], slot_date: date
    ) -> dict[int, list[TimeRange]]:
        """All occupied ranges per court on a date, for availability grids."""
        court_ids = list(court_ids)
        ranges: dict[int, list[TimeRange]] = {court_id: [] for court_id in court_ids}
        if not court_ids:
            return ranges
        result = await db.execute(
            select(CourtSlot.court_id, CourtSlot.start_time, CourtSlot.end_time)
            .where(CourtSlot.court_id.in_(court_ids), CourtSlot.slot_date == slot_date)
            .order_by(CourtSlot.court_id, CourtSlot.start_time)
        )
        for court_id, start, end in result.all():
            ranges[court_id].append(TimeRange(start, end))
        return ranges
