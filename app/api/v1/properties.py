"""Public property pricing endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_quote_service
from app.config import settings
from app.core.exceptions import InvalidRange
from app.domain.rates import count_nights, iter_nights
from app.schemas.pricing import (
    NightlyPrice,
    PriceLineItemResponse,
    QuoteRequest,
    QuoteResponse,
    RateDayResponse,
    RatesResponse,
)
from app.services.quote_service import QuoteService

router = APIRouter()


@router.get("/{property_id}/rates", response_model=RatesResponse)
async def get_property_rates(
    property_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    quotes: Annotated[QuoteService, Depends(get_quote_service)],
    start: date = Query(...),
    end: date = Query(...),
) -> RatesResponse:
    """Per-night rates for a calendar window ``[start, end)``."""
    if end <= start:
        raise InvalidRange("end must be after start")
    if count_nights(start, end) > settings.max_stay_nights:
        raise InvalidRange(f"Rate windows are limited to {settings.max_stay_nights} days")

    prop = await quotes.get_property(db, property_id)
    rates = await quotes.get_rates(db, prop, start, end)

    days = []
    for night in iter_nights(start, end):
        rate = rates.get(night)
        if rate is None:
            # Gap in the feed: unknown price, not bookable
            days.append(RateDayResponse(night=night, price=None, min_stay=1, available=False))
        else:
            days.append(
                RateDayResponse(
                    night=night,
                    price=rate.price,
                    min_stay=rate.min_stay,
                    available=rate.available,
                )
            )

    return RatesResponse(
        property_id=str(prop.id),
        currency=prop.currency,
        start=start,
        end=end,
        rates=days,
    )


@router.post("/{property_id}/quote", response_model=QuoteResponse)
async def quote_stay(
    property_id: UUID,
    body: QuoteRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    quotes: Annotated[QuoteService, Depends(get_quote_service)],
) -> QuoteResponse:
    """Price a stay. Unbookable stays answer with the reason code in the error body."""
    prop = await quotes.get_property(db, property_id)
    quote = await quotes.build_quote(
        db, prop, body.check_in, body.check_out, body.guests, extras=body.extras
    )
    return QuoteResponse(
        check_in=quote.check_in,
        check_out=quote.check_out,
        nights=quote.nights,
        guests=quote.guests,
        base_total_cents=quote.base_total_cents,
        extras_cents=quote.extras_cents,
        city_tax_cents=quote.city_tax_cents,
        fee_percent=quote.fee_percent,
        platform_fee_cents=quote.platform_fee_cents,
        broker_net_cents=quote.broker_net_cents,
        withholding_tax_cents=quote.withholding_tax_cents,
        total_cents=quote.total_cents,
        currency=quote.currency,
        nightly=[NightlyPrice(night=night, price_cents=price) for night, price in quote.nightly],
        line_items=[
            PriceLineItemResponse(label=item.label, amount_cents=item.amount_cents, detail=item.detail)
            for item in quote.line_items
        ],
    )
