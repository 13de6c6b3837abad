"""Availability grid for a field on a given date.

Cells are cut at the default min_rental between the day's opening hours. A cell
is unavailable when it overlaps a reserved or owner-locked slot, or ends before
the booking lead time has passed.
"""

from dataclasses import dataclass, field
from datetime import date, datetime

from sportbook.core.clock import Clock, system_clock
from sportbook.core.config import settings
from sportbook.core.unit_of_work import UnitOfWorkFactory
from sportbook.services.directory import VenueDirectory
from sportbook.services.pricing import get_opening_hours
from sportbook.services.slot_locks import SlotLockStore
from sportbook.services.timeslots import TimeRange, ends_too_soon, from_minutes, to_minutes


@dataclass
class CourtAvailability:
    court_id: int
    court_name: str
    slots: list[dict] = field(default_factory=list)


def generate_cells(
    hours: TimeRange,
    step_minutes: int,
    query_date: date,
    booked: list[TimeRange],
    now: datetime,
) -> list[dict]:
    """All step-sized cells inside the opening hours.

    Returns dicts with keys: start_time, end_time, is_available. A trailing piece
    shorter than a step is not offered.
    """
    cells: list[dict] = []
    usable = hours.minutes - hours.minutes % step_minutes
    if usable <= 0:
        return cells
    for cell in TimeRange(hours.start, from_minutes(to_minutes(hours.start) + usable)).split(step_minutes):
        too_soon = ends_too_soon(query_date, cell, now, settings.tz, settings.booking_lead_minutes)
        taken = any(cell.overlaps(b) for b in booked)
        cells.append(
            {
                "start_time": cell.start.strftime("%H:%M"),
                "end_time": cell.end.strftime("%H:%M"),
                "is_available": not too_soon and not taken,
            }
        )
    return cells


class AvailabilityService:
    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        clock: Clock = system_clock,
        slots: SlotLockStore | None = None,
        directory: VenueDirectory | None = None,
    ):
        self.uow_factory = uow_factory
        self.clock = clock
        self.slots = slots or SlotLockStore()
        self.directory = directory or VenueDirectory()

    async def for_field(self, field_id: int, query_date: date) -> list[CourtAvailability]:
        """Per-court grid. Empty if the field has no opening hours that day."""
        now = self.clock.now()
        async with self.uow_factory() as uow:
            db = uow.session
            field_ = await self.directory.get_field(db, field_id, bookable_only=True)
            hours = await get_opening_hours(db, field_.id, query_date.weekday())
            if hours is None:
                return []
            booked = await self.slots.locked_ranges(db, (court.id for court in field_.courts), query_date)

        return [
            CourtAvailability(
                court_id=court.id,
                court_name=court.name,
                slots=generate_cells(hours, settings.default_min_rental, query_date, booked[court.id], now),
            )
            for court in field_.courts
        ]
