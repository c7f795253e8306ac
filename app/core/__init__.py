"""Core utilities: errors, security, caching, middleware."""

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    BelowMinimumStay,
    DateRangeUnavailable,
    InvalidBookingStatus,
    InvalidRange,
    MissingRateData,
    NightUnavailable,
    NotFoundError,
    PaymentError,
    PriceChanged,
    SettlementConflict,
    UpstreamUnavailable,
    ValidationError,
)

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "BelowMinimumStay",
    "DateRangeUnavailable",
    "InvalidBookingStatus",
    "InvalidRange",
    "MissingRateData",
    "NightUnavailable",
    "NotFoundError",
    "PaymentError",
    "PriceChanged",
    "SettlementConflict",
    "UpstreamUnavailable",
    "ValidationError",
]
