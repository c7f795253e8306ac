"""Broker back-office endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_booking_service, get_current_admin, get_current_broker, get_db
from app.domain.booking_state import BookingStatus, display_status
from app.models.booking import Booking
from app.models.user import User
from app.schemas.admin import CityTaxResponse, CityTaxUpdate
from app.schemas.booking import BookingCancel, BookingListResponse, BookingResponse
from app.services.booking_service import BookingService
from app.services.city_tax_service import city_tax_service

router = APIRouter()


def _booking_response(booking: Booking, today: date) -> BookingResponse:
    response = BookingResponse.model_validate(booking)
    response.display_status = display_status(booking.status, booking.check_out, today)
    return response


# ============ BOOKINGS ============


@router.get("/bookings", response_model=BookingListResponse)
async def list_bookings(
    broker: Annotated[User, Depends(get_current_broker)],
    db: Annotated[AsyncSession, Depends(get_db)],
    bookings: Annotated[BookingService, Depends(get_booking_service)],
    status: BookingStatus | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> BookingListResponse:
    """Bookings on the broker's properties."""
    items, total = await bookings.list_broker_bookings(
        db, broker, status=status.value if status else None, page=page, page_size=page_size
    )
    today = date.today()
    return BookingListResponse(
        items=[_booking_response(b, today) for b in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    broker: Annotated[User, Depends(get_current_broker)],
    db: Annotated[AsyncSession, Depends(get_db)],
    bookings: Annotated[BookingService, Depends(get_booking_service)],
    body: BookingCancel | None = None,
) -> BookingResponse:
    """Cancel a booking, refunding the guest if they already paid."""
    result = await bookings.cancel_booking(
        db, booking_id, broker, reason=body.reason if body else None
    )
    return _booking_response(result.booking, date.today())


# ============ CITY TAX ============


@router.get("/city-tax", response_model=list[CityTaxResponse])
async def list_city_tax_defaults(
    broker: Annotated[User, Depends(get_current_broker)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list:
    return await city_tax_service.list_defaults(db)


@router.put("/city-tax", response_model=CityTaxResponse)
async def upsert_city_tax_default(
    body: CityTaxUpdate,
    admin: Annotated[User, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Set the tourist tax for a city. Admin only."""
    return await city_tax_service.upsert_default(
        db, body.city, body.country, body.amount, body.max_nights
    )
