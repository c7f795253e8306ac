"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_number: str
    property_id: UUID

    # Dates
    check_in: date
    check_out: date
    nights: int

    # Guests
    guests: int
    adults: int
    children: int
    guest_email: str
    guest_first_name: str | None
    guest_last_name: str | None
    guest_phone: str | None
    guest_note: str | None

    # Pricing
    base_total: int
    extras_total: int
    city_tax: int
    total_price: int
    currency: str
    fee_percent: int
    platform_fee: int
    broker_net: int
    withholding_tax: int | None

    # Status
    status: str
    display_status: str | None = None
    needs_refund: bool
    settlement_conflict_at: datetime | None

    # Cancellation
    cancelled_by: str | None
    cancellation_reason: str | None
    refund_amount: int

    # Timestamps
    paid_at: datetime | None
    confirmed_at: datetime | None
    cancelled_at: datetime | None
    created_at: datetime


class BookingListResponse(BaseModel):
    items: list[BookingResponse]
    total: int
    page: int
    page_size: int


class BookingCancel(BaseModel):
    """Schema for cancelling a booking."""

    reason: str | None = Field(None, max_length=1000)
