"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    code: str = "error"

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    code = "validation_error"

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    code = "not_found"

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    code = "authentication_failed"

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    code = "forbidden"

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidBookingStatus(AppException):
    """Invalid booking status for operation."""

    code = "invalid_booking_status"

    def __init__(self, detail: str = "This operation is not allowed for the current booking status") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class PaymentError(AppException):
    """Payment processing error."""

    code = "payment_error"

    def __init__(self, detail: str = "Payment processing failed") -> None:
        super().__init__(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=detail)


# ==================== PRICING / AVAILABILITY ====================


class UpstreamUnavailable(AppException):
    """The PMS feed was unreachable or returned an invalid payload (retryable)."""

    code = "upstream_unavailable"

    def __init__(self, service: str = "pms", detail: str | None = None) -> None:
        message = f"External service '{service}' is unavailable"
        if detail:
            message = f"{message}: {detail}"
        self.service = service
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)


class InvalidRange(AppException):
    """Check-out not after check-in, or the stay is implausibly long."""

    code = "invalid_range"

    def __init__(self, detail: str = "Check-out must be after check-in") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class DateRangeUnavailable(AppException):
    """At least one night of the requested stay cannot be booked."""

    code = "date_range_unavailable"

    def __init__(self, detail: str = "The selected dates are not available") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class NightUnavailable(DateRangeUnavailable):
    """A specific night in the requested stay is blocked or booked."""

    code = "night_unavailable"

    def __init__(self, night: Any = None) -> None:
        self.night = night
        detail = "The selected dates are not available"
        if night is not None:
            detail = f"The night of {night} is not available"
        super().__init__(detail=detail)


class BelowMinimumStay(AppException):
    """Requested nights are fewer than the arrival night's minimum stay."""

    code = "below_minimum_stay"

    def __init__(self, min_stay: int, nights: int | None = None) -> None:
        self.min_stay = min_stay
        self.nights = nights
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Minimum stay is {min_stay} nights",
        )


class MissingRateData(AppException):
    """The rate feed has a gap for a night (pricing unavailable, not taken)."""

    code = "missing_rate_data"

    def __init__(self, night: Any = None) -> None:
        self.night = night
        detail = "Pricing is unavailable for the selected dates"
        if night is not None:
            detail = f"Pricing is unavailable for the night of {night}"
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class PriceChanged(AppException):
    """The client-side total no longer matches the server-side quote."""

    code = "price_changed"

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail="The price for these dates has changed, please review the new total",
        )


class SettlementConflict(AppException):
    """Another confirmed booking overlaps the stay being settled."""

    code = "settlement_conflict"

    def __init__(self, booking_id: Any, detail: str | None = None) -> None:
        self.booking_id = booking_id
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail or f"Booking {booking_id} overlaps an already confirmed booking",
        )
