"""Database models."""

from app.models.booking import Booking
from app.models.event_log import EventLog
from app.models.fees import CityTaxDefault, FeeOverride
from app.models.property import PmsIntegration, Property
from app.models.user import User

__all__ = [
    # User
    "User",
    # Property
    "Property",
    "PmsIntegration",
    # Booking
    "Booking",
    # Fees
    "FeeOverride",
    "CityTaxDefault",
    # Operations
    "EventLog",
]
