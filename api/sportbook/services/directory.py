"""Read-only lookups into venues and fields."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sportbook.core.errors import NotFound
from sportbook.models.venue import Field, Venue, VenueStatus


class VenueDirectory:
    async def get_field(self, db: AsyncSession, field_id: int, bookable_only: bool = False) -> Field:
        """Load a field with its venue and courts. Raises NotFound for missing or deleted venues.

        With bookable_only, venues that are locked or banned are treated as missing too.
        """
        result = await db.execute(
            select(Field)
            .join(Venue)
            .options(selectinload(Field.venue), selectinload(Field.courts))
            .where(Field.id == field_id, Venue.deleted_at.is_(None))
        )
        field = result.scalar_one_or_none()
        if field is None or (bookable_only and field.venue.status != VenueStatus.ACTIVE):
            raise NotFound(f"Field {field_id} not found")
        return field

    async def get_owner_id(self, db: AsyncSession, field_id: int) -> int:
        result = await db.execute(select(Venue.owner_id).join(Field).where(Field.id == field_id))
        owner_id = result.scalar_one_or_none()
        if owner_id is None:
            raise NotFound(f"Field {field_id} not found")
        return owner_id


def ensure_courts_on_field(field: Field, court_ids) -> None:
    known = {court.id for court in field.courts}
    for court_id in court_ids:
        if court_id not in known:
            raise NotFound(f"Court {court_id} not found on field {field.id}")
