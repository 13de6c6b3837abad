"""Venue, field and court models.

Venue = a sports centre run by one owner, with the bank account customers pay into.
Field = a playing area at a venue with its own default price and opening hours.
Court = an individually bookable unit of a field; slots are reserved per court.

These tables are maintained by the venue management side of the platform;
the booking core only reads them.
"""

import enum
from datetime import date, datetime, time

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sportbook.core.auth import Role
from sportbook.models.base import Base, TimestampMixin, str_enum


class VenueStatus(enum.StrEnum):
    ACTIVE = "active"
    LOCKED = "locked"
    BANNED = "banned"


class User(TimestampMixin, Base):
    """Local mirror of an identity-provider account (owners need an email for notifications)."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(254), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[Role] = mapped_column(str_enum(Role, "user_role"), default=Role.CUSTOMER, nullable=False)

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Venue(TimestampMixin, Base):
    __tablename__ = "venues"

    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str | None] = mapped_column(Text)
    latitude: Mapped[float | None] = mapped_column(Numeric(10, 7))
    longitude: Mapped[float | None] = mapped_column(Numeric(10, 7))
    status: Mapped[VenueStatus] = mapped_column(
        str_enum(VenueStatus, "venue_status"), default=VenueStatus.ACTIVE, nullable=False
    )

    # Payout account shown on the payment QR
    bank_name: Mapped[str] = mapped_column(String(50), nullable=False)
    bank_account_number: Mapped[str] = mapped_column(String(50), nullable=False)
    bank_account_name: Mapped[str | None] = mapped_column(String(200))

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    owner: Mapped["User"] = relationship()
    fields: Mapped[list["Field"]] = relationship(back_populates="venue", order_by="Field.id")

    def __repr__(self) -> str:
        return f"<Venue {self.name}>"


class Field(TimestampMixin, Base):
    __tablename__ = "fields"

    id: Mapped[int] = mapped_column(primary_key=True)
    venue_id: Mapped[int] = mapped_column(ForeignKey("venues.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    default_price: Mapped[int] = mapped_column(nullable=False)  # per default min_rental unit

    venue: Mapped["Venue"] = relationship(back_populates="fields")
    courts: Mapped[list["Court"]] = relationship(back_populates="field", order_by="Court.id")

    def __repr__(self) -> str:
        return f"<Field {self.name} @ venue {self.venue_id}>"


class FieldOpeningHour(Base):
    __tablename__ = "field_opening_hours"

    id: Mapped[int] = mapped_column(primary_key=True)
    field_id: Mapped[int] = mapped_column(ForeignKey("fields.id"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(nullable=False)  # 0=Monday, as date.weekday()
    opening_time: Mapped[time] = mapped_column(Time, nullable=False)
    closing_time: Mapped[time] = mapped_column(Time, nullable=False)

    __table_args__ = (Index("ix_opening_hours_field_day", "field_id", "day_of_week", unique=True),)


class Court(TimestampMixin, Base):
    __tablename__ = "courts"

    id: Mapped[int] = mapped_column(primary_key=True)
    field_id: Mapped[int] = mapped_column(ForeignKey("fields.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    field: Mapped["Field"] = relationship(back_populates="courts")

    def __repr__(self) -> str:
        return f"<Court {self.name} @ field {self.field_id}>"


class FieldPriceRule(Base):
    """Recurring weekly price band for a field, e.g. Monday 17:00-22:00 at 150k per 60 min."""

    __tablename__ = "field_price_rules"

    id: Mapped[int] = mapped_column(primary_key=True)
    field_id: Mapped[int] = mapped_column(ForeignKey("fields.id"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    price: Mapped[int] = mapped_column(nullable=False)
    min_rental: Mapped[int] = mapped_column(nullable=False)  # minutes

    __table_args__ = (Index("ix_price_rules_field_day", "field_id", "day_of_week"),)


class CourtSpecialTime(Base):
    """A one-off range on a specific court and date that overrides recurring pricing."""

    __tablename__ = "court_special_times"

    id: Mapped[int] = mapped_column(primary_key=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    special_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    price: Mapped[int] = mapped_column(nullable=False)
    min_rental: Mapped[int] = mapped_column(nullable=False)

    __table_args__ = (Index("ix_special_times_court_date_start", "court_id", "date", "start_time", unique=True),)
