"""Guest checkout endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_checkout_service, get_db, get_optional_user
from app.models.user import User
from app.schemas.checkout import CheckoutRequest, CheckoutResponse
from app.services.checkout_service import CheckoutService

router = APIRouter()


@router.post("", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def create_checkout(
    body: CheckoutRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    checkout: Annotated[CheckoutService, Depends(get_checkout_service)],
    current_user: Annotated[User | None, Depends(get_optional_user)],
) -> CheckoutResponse:
    """Create a pending booking and return the Stripe Checkout URL."""
    result = await checkout.create_checkout(db, body, current_user)
    return CheckoutResponse(
        booking_id=result.booking.id,
        booking_number=result.booking.booking_number,
        checkout_url=result.checkout_url,
        session_id=result.session_id,
        total_cents=result.booking.total_price,
        currency=result.booking.currency,
    )
