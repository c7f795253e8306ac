"""Webhook endpoints for payment providers."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_payment_gateway, get_settlement_service
from app.gateways.base import PaymentGateway
from app.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/stripe", status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
    settlement: Annotated[SettlementService, Depends(get_settlement_service)],
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
) -> dict:
    """Handle Stripe webhook events.

    Anything short of a database error is acknowledged with 200 so Stripe
    stops retrying; database errors surface as 500 and are retried.
    """
    if not stripe_signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe-Signature header",
        )

    # Raw body for signature verification
    payload = await request.body()
    event = gateway.verify_webhook(payload, stripe_signature)
    if event is None:
        logger.warning("Rejected Stripe webhook with invalid signature")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature",
        )

    result = await settlement.handle_event(db, event)
    return {
        "received": True,
        "outcome": result.outcome.value,
        "booking_id": str(result.booking_id) if result.booking_id else None,
    }
