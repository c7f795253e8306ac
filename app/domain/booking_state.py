"""Booking state machine."""

from datetime import date
from enum import Enum

from app.core.exceptions import InvalidBookingStatus


class BookingStatus(str, Enum):
    """Persisted booking states. ``completed`` is derived, never stored."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


COMPLETED = "completed"

BOOKING_TRANSITIONS: dict[str, set[str]] = {
    BookingStatus.PENDING.value: {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value},
    BookingStatus.CONFIRMED.value: {BookingStatus.CANCELLED.value},
    BookingStatus.CANCELLED.value: set(),
}


def can_transition(current: str, target: str) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


def assert_booking_transition(current: str, target: str) -> None:
    if not can_transition(current, target):
        raise InvalidBookingStatus(
            f"Invalid booking transition: {current} → {target}"
        )


def statuses_leading_to(target: str) -> tuple[str, ...]:
    """Statuses allowed to move to ``target``, for guarding conditional UPDATEs."""
    return tuple(
        status for status, targets in BOOKING_TRANSITIONS.items() if target in targets
    )


def display_status(status: str, check_out: date, today: date | None = None) -> str:
    """Status shown to users.

    A confirmed stay counts as completed from its checkout day on: the guest
    leaves that morning and the night before was the last one paid for.
    """
    today = today or date.today()
    if status == BookingStatus.CONFIRMED.value and check_out <= today:
        return COMPLETED
    return status
