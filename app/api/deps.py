"""API dependencies for authentication and service wiring."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError, AuthorizationError
from app.core.security import verify_token
from app.database import get_db
from app.gateways.base import PaymentGateway
from app.gateways.stripe_gateway import StripeGateway
from app.models.user import User
from app.services.booking_service import BookingService, booking_service
from app.services.checkout_service import CheckoutService, checkout_service
from app.services.quote_service import QuoteService, quote_service
from app.services.settlement_service import SettlementService, settlement_service

__all__ = [
    "get_db",
    "get_current_user",
    "get_optional_user",
    "get_current_broker",
    "get_current_admin",
    "get_payment_gateway",
    "get_quote_service",
    "get_checkout_service",
    "get_settlement_service",
    "get_booking_service",
]

# Security scheme
security = HTTPBearer()


async def _load_user(db: AsyncSession, token: str) -> User:
    payload = verify_token(token, token_type="access")
    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token payload")
    try:
        user = await db.get(User, UUID(user_id))
    except ValueError:
        raise AuthenticationError("Invalid token payload")
    if user is None:
        raise AuthenticationError("User not found")
    return user


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    return await _load_user(db, credentials.credentials)


async def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(HTTPBearer(auto_error=False))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Optionally get the current user if authenticated (guest checkout allowed)."""
    if not credentials:
        return None
    try:
        return await _load_user(db, credentials.credentials)
    except AuthenticationError:
        return None


async def get_current_broker(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they are a broker (admins pass too)."""
    if current_user.role not in ("broker", "admin"):
        raise AuthorizationError("Broker access required")
    return current_user


async def get_current_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get current user and verify they are an admin."""
    if current_user.role != "admin":
        raise AuthorizationError("Admin access required")
    return current_user


# ==================== SERVICES ====================
# Overridable through app.dependency_overrides in tests


def get_payment_gateway() -> PaymentGateway:
    return StripeGateway()


def get_quote_service() -> QuoteService:
    return quote_service


def get_checkout_service() -> CheckoutService:
    return checkout_service


def get_settlement_service() -> SettlementService:
    return settlement_service


def get_booking_service() -> BookingService:
    return booking_service
