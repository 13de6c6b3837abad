"""Pydantic schemas for API serialisation."""

from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, Field

# --- Booking ---


class SlotRequestIn(BaseModel):
    court_id: int
    start_time: time
    end_time: time


class BookingCreate(BaseModel):
    field_id: int
    booking_date: date
    customer_name: str = Field(min_length=1, max_length=200)
    customer_phone: str = Field(min_length=1, max_length=50)
    courts: list[SlotRequestIn]


class PaymentQROut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    bank_name: str
    bank_account: str
    bank_account_name: str | None
    amount: int
    message: str
    qr_url: str


class BookingResultOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: int
    total_price: int
    payment: PaymentQROut


class MessageOut(BaseModel):
    detail: str


# --- Listings ---


class CourtSlotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    court_id: int
    court_name: str
    start_time: time
    end_time: time
    price: int


class UserBookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    venue_name: str
    venue_address: str | None
    field_name: str
    booking_date: date
    total_price: int
    status: str
    display_status: str
    created_at: datetime
    courts: list[CourtSlotOut]


class OwnerBookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    message: str
    customer_name: str
    customer_phone: str
    venue_name: str
    field_name: str
    booking_date: date
    total_price: int
    status: str
    display_status: str
    created_at: datetime
    courts: list[CourtSlotOut]


class OwnerBookingPageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    items: list[OwnerBookingOut]
    page: int
    per_page: int
    total: int
    pages: int
    total_completed_price: int


class UserHistoryItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_date: date
    total_price: int
    status: str
    display_status: str
    created_at: datetime


class UserBookingPageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    items: list[UserHistoryItemOut]
    page: int
    per_page: int
    total: int
    pages: int
    total_completed_price: int


# --- Revenue ---


class CourtRevenueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    court_id: int
    court_name: str
    revenue: int


class FieldRevenueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    field_id: int
    field_name: str
    revenue: int
    courts: list[CourtRevenueOut]


class VenueRevenueOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    venue_id: int
    venue_name: str
    revenue: int
    fields: list[FieldRevenueOut]


class RevenueStatsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    month: int | None
    total_revenue: int
    venues: list[VenueRevenueOut]


class VenueRankingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    venue_id: int
    venue_name: str
    revenue: int
    bookings: int


# --- Owner locks ---


class LockCreate(BaseModel):
    date: date
    courts: list[SlotRequestIn]


class LockedRangeOut(BaseModel):
    court_id: int
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"


class LockResultOut(BaseModel):
    created: list[LockedRangeOut]
    already_locked: list[LockedRangeOut]
    conflicts: list[LockedRangeOut]


class SlotLockStatusOut(BaseModel):
    court_id: int
    date: date
    start_time: str
    end_time: str
    is_locked: bool


# --- Availability ---


class SlotOut(BaseModel):
    start_time: str  # "HH:MM"
    end_time: str  # "HH:MM"
    is_available: bool


class AvailabilityOut(BaseModel):
    court_id: int
    court_name: str
    date: date
    slots: list[SlotOut]
