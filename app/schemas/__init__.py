"""Pydantic schemas for API validation."""

from app.schemas.admin import (
    CityTaxResponse,
    CityTaxUpdate,
    EventLogListResponse,
    EventLogResponse,
    FeeOverrideResponse,
    FeeOverrideUpdate,
)
from app.schemas.booking import BookingCancel, BookingListResponse, BookingResponse
from app.schemas.checkout import CheckoutRequest, CheckoutResponse, GuestDetails
from app.schemas.pricing import QuoteRequest, QuoteResponse, RateDayResponse, RatesResponse

__all__ = [
    # Admin
    "CityTaxResponse",
    "CityTaxUpdate",
    "EventLogListResponse",
    "EventLogResponse",
    "FeeOverrideResponse",
    "FeeOverrideUpdate",
    # Booking
    "BookingCancel",
    "BookingListResponse",
    "BookingResponse",
    # Checkout
    "CheckoutRequest",
    "CheckoutResponse",
    "GuestDetails",
    # Pricing
    "QuoteRequest",
    "QuoteResponse",
    "RateDayResponse",
    "RatesResponse",
]
