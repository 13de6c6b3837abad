"""All models imported here so Base.metadata sees every table."""

from sportbook.models.base import Base
from sportbook.models.booking import Booking, BookingCourt, BookingStatus, CourtSlot, Payment, PaymentStatus
from sportbook.models.venue import (
    Court,
    CourtSpecialTime,
    Field,
    FieldOpeningHour,
    FieldPriceRule,
    User,
    Venue,
    VenueStatus,
)

__all__ = [
    "Base",
    "User",
    "Venue",
    "VenueStatus",
    "Field",
    "FieldOpeningHour",
    "Court",
    "FieldPriceRule",
    "CourtSpecialTime",
    "Booking",
    "BookingStatus",
    "BookingCourt",
    "CourtSlot",
    "Payment",
    "PaymentStatus",
]
