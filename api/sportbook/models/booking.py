"""Booking models.

A booking reserves one or more time ranges, possibly on several courts of the
same field, for a customer on a single date. Each requested range becomes a
BookingCourt, and each BookingCourt is cut into min_rental-sized CourtSlot rows,
which are the actual reservation cells checked for overlap.

Owner locks are CourtSlot rows with locked_by_owner=True and no booking court.
"""

import enum
from datetime import date, datetime, time

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sportbook.models.base import Base, TimestampMixin, str_enum


class BookingStatus(enum.StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(enum.StrEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True)
    field_id: Mapped[int] = mapped_column(ForeignKey("fields.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(50), nullable=False)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_price: Mapped[int] = mapped_column(nullable=False)

    status: Mapped[BookingStatus] = mapped_column(
        str_enum(BookingStatus, "booking_status"), default=BookingStatus.PENDING, nullable=False
    )
    # Set from the service clock, not the database, so payment windows are testable
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    field: Mapped["Field"] = relationship()
    booking_courts: Mapped[list["BookingCourt"]] = relationship(
        back_populates="booking", order_by="BookingCourt.id", cascade="all, delete-orphan"
    )
    payment: Mapped["Payment | None"] = relationship(back_populates="booking", uselist=False)

    __table_args__ = (
        Index("ix_bookings_user", "user_id", "created_at"),
        Index("ix_bookings_field_status", "field_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Booking {self.id} {self.booking_date} {self.status}>"


class BookingCourt(Base):
    """One requested contiguous range on one court, priced by a single tier."""

    __tablename__ = "booking_courts"

    id: Mapped[int] = mapped_column(primary_key=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id"), nullable=False, index=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    price: Mapped[int] = mapped_column(nullable=False)

    booking: Mapped["Booking"] = relationship(back_populates="booking_courts")
    court: Mapped["Court"] = relationship()
    slots: Mapped[list["CourtSlot"]] = relationship(back_populates="booking_court", order_by="CourtSlot.start_time")


class CourtSlot(Base):
    __tablename__ = "court_slots"

    id: Mapped[int] = mapped_column(primary_key=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    booking_court_id: Mapped[int | None] = mapped_column(ForeignKey("booking_courts.id"))
    slot_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    locked_by_owner: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    booking_court: Mapped["BookingCourt | None"] = relationship(back_populates="slots")

    __table_args__ = (
        # Last line of defence against double-booking; the overlap check runs under
        # the per-court/date lock before anything is inserted.
        Index("ix_court_slots_no_double", "court_id", "date", "start_time", unique=True),
        Index("ix_court_slots_booking_court", "booking_court_id"),
    )

    def __repr__(self) -> str:
        return f"<CourtSlot court={self.court_id} {self.slot_date} {self.start_time}-{self.end_time}>"


class Payment(TimestampMixin, Base):
    """Ledger entry for the bank transfer a booking is waiting on. No settlement happens here."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id"), unique=True, nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)
    message: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        str_enum(PaymentStatus, "payment_status"), default=PaymentStatus.PENDING, nullable=False
    )

    booking: Mapped["Booking"] = relationship(back_populates="payment")


# Import for type hints
from sportbook.models.venue import Court, Field  # noqa: E402
