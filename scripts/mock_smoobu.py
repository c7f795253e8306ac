#!/usr/bin/env python3
"""
Local mock of the Smoobu API, plus a signed Stripe webhook trigger.

DO NOT ADD BUSINESS LOGIC HERE.
This server only imitates the upstream endpoints the backend calls.

Usage:
    uvicorn scripts.mock_smoobu:app --port 4200
    SMOOBU_BASE_URL=http://localhost:4200 uvicorn app.main:app --reload

Endpoints:
    GET    /api/me
    GET    /api/rates?apartments[]=1001&start_date=...&end_date=...
    POST   /booking/checkApartmentAvailability
    POST   /api/reservations
    DELETE /api/reservations/{id}
    POST   /mock/trigger-webhook   (fires checkout.session.completed at the backend)
"""

import hashlib
import hmac
import itertools
import json
import logging
import os
import time
from datetime import date, timedelta

import httpx
from fastapi import FastAPI, Header, HTTPException, Query
from pydantic import BaseModel, Field

logger = logging.getLogger("mock_smoobu")

BACKEND_URL = os.environ.get("BACKEND_URL", "http://localhost:8000")
WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET", "whsec_mock")
PRICE_PER_NIGHT = 150.0  # EUR

app = FastAPI(title="Mock Smoobu")

_reservation_ids = itertools.count(99001)
# reservation id -> (apartment id, arrival, departure)
reservations: dict[int, tuple[int, date, date]] = {}


class AvailabilityRequest(BaseModel):
    arrivalDate: date
    departureDate: date
    apartments: list[int] = Field(default_factory=list)
    customerId: int | None = None
    guests: int | None = None


class ReservationRequest(BaseModel):
    apartmentId: int
    arrivalDate: date
    departureDate: date
    channelId: int | None = None
    firstName: str | None = None
    lastName: str | None = None
    email: str | None = None


class TriggerWebhookRequest(BaseModel):
    sessionId: str
    paymentIntent: str | None = None
    eventType: str = "checkout.session.completed"


def date_range(start: date, end: date) -> list[date]:
    """Dates from start (inclusive) to end (exclusive)."""
    return [start + timedelta(days=i) for i in range((end - start).days)]


def has_overlap(apartment_id: int, arrival: date, departure: date) -> bool:
    return any(
        apt == apartment_id and a < departure and d > arrival
        for apt, a, d in reservations.values()
    )


def booked_dates(apartment_id: int) -> set[date]:
    dates: set[date] = set()
    for apt, arrival, departure in reservations.values():
        if apt == apartment_id:
            dates.update(date_range(arrival, departure))
    return dates


def require_api_key(api_key: str | None) -> None:
    if not api_key:
        raise HTTPException(
            status_code=401,
            detail={"status": 401, "title": "Unauthorized", "detail": "Missing Api-Key header"},
        )


@app.get("/api/me")
async def me(api_key: str | None = Header(None, alias="Api-Key")) -> dict:
    require_api_key(api_key)
    return {"id": 12345, "email": "mock-broker@example.com", "name": "Mock Broker"}


@app.get("/api/rates")
async def rates(
    apartments: list[int] = Query(..., alias="apartments[]"),
    start_date: date = Query(...),
    end_date: date = Query(...),
    api_key: str | None = Header(None, alias="Api-Key"),
) -> dict:
    require_api_key(api_key)
    data = {}
    for apartment_id in apartments:
        booked = booked_dates(apartment_id)
        data[str(apartment_id)] = {
            d.isoformat(): {
                "price": PRICE_PER_NIGHT,
                "min_length_of_stay": 1,
                "available": 0 if d in booked else 1,
            }
            for d in date_range(start_date, end_date + timedelta(days=1))
        }
    logger.info(f"GET /api/rates apartments={apartments} {start_date}..{end_date}")
    return {"data": data}


@app.post("/booking/checkApartmentAvailability")
async def check_availability(
    body: AvailabilityRequest,
    api_key: str | None = Header(None, alias="Api-Key"),
) -> dict:
    require_api_key(api_key)
    available, prices, errors = [], {}, {}
    nights = len(date_range(body.arrivalDate, body.departureDate))
    for apartment_id in body.apartments:
        if has_overlap(apartment_id, body.arrivalDate, body.departureDate):
            errors[str(apartment_id)] = {"errorCode": 0, "message": "Not available for selected dates"}
        else:
            available.append(apartment_id)
            prices[str(apartment_id)] = {"price": PRICE_PER_NIGHT * nights, "currency": "EUR"}
    return {"availableApartments": available, "prices": prices, "errorMessages": errors}


@app.post("/api/reservations")
async def create_reservation(
    body: ReservationRequest,
    api_key: str | None = Header(None, alias="Api-Key"),
) -> dict:
    require_api_key(api_key)
    reservation_id = next(_reservation_ids)
    reservations[reservation_id] = (body.apartmentId, body.arrivalDate, body.departureDate)
    logger.info(
        f"POST /api/reservations #{reservation_id} apt={body.apartmentId} "
        f"{body.arrivalDate}..{body.departureDate}"
    )
    return {"id": reservation_id}


@app.delete("/api/reservations/{reservation_id}")
async def cancel_reservation(
    reservation_id: int,
    api_key: str | None = Header(None, alias="Api-Key"),
) -> dict:
    require_api_key(api_key)
    if reservations.pop(reservation_id, None) is None:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return {"id": reservation_id, "status": "cancelled"}


def sign_payload(payload: str, secret: str) -> str:
    """Build a Stripe-Signature header for ``payload``."""
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


@app.post("/mock/trigger-webhook")
async def trigger_webhook(body: TriggerWebhookRequest) -> dict:
    """Fire a signed checkout event at the backend's Stripe webhook."""
    event = {
        "id": f"evt_test_mock_{time.time_ns()}",
        "object": "event",
        "type": body.eventType,
        "data": {
            "object": {
                "id": body.sessionId,
                "object": "checkout.session",
                "payment_intent": body.paymentIntent or f"pi_test_mock_{time.time_ns()}",
                "payment_status": "paid",
                "metadata": {},
            }
        },
    }
    payload = json.dumps(event)
    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            response = await client.post(
                f"{BACKEND_URL}/api/v1/webhooks/stripe",
                content=payload,
                headers={
                    "Content-Type": "application/json",
                    "Stripe-Signature": sign_payload(payload, WEBHOOK_SECRET),
                },
            )
        except httpx.HTTPError as e:
            raise HTTPException(status_code=502, detail=f"Backend unreachable: {e}")
    return {"webhookStatus": response.status_code, "webhookBody": response.json()}
