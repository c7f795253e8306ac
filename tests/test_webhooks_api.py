"""Tests for the Stripe webhook endpoint, with real signature verification."""

import hashlib
import hmac
import json
import time

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_payment_gateway
from app.gateways.stripe_gateway import StripeGateway
from app.main import app
from app.models import Booking

WEBHOOK_SECRET = "whsec_test_secret"
WEBHOOK_URL = "/api/v1/webhooks/stripe"


def sign(payload: str, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


def completed_event(session_id: str) -> str:
    return json.dumps(
        {
            "id": "evt_test_webhook",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": session_id,
                    "object": "checkout.session",
                    "payment_intent": "pi_test_webhook",
                    "payment_status": "paid",
                    "metadata": {},
                }
            },
        }
    )


@pytest.fixture
def stripe_client(client):
    app.dependency_overrides[get_payment_gateway] = lambda: StripeGateway(
        secret_key="sk_test_unused", webhook_secret=WEBHOOK_SECRET
    )
    return client


async def post_event(client, payload: str, signature: str | None):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return await client.post(WEBHOOK_URL, content=payload, headers=headers)


async def test_signed_event_confirms_booking(stripe_client, booking_factory, session_maker):
    booking = await booking_factory()
    payload = completed_event(booking.stripe_session_id)

    response = await post_event(stripe_client, payload, sign(payload))

    assert response.status_code == 200, response.text
    assert response.json() == {
        "received": True,
        "outcome": "confirmed",
        "booking_id": str(booking.id),
    }
    async with session_maker() as session:
        stored = await session.scalar(select(Booking).where(Booking.id == booking.id))
        assert stored.status == "confirmed"
        assert stored.stripe_payment_intent_id == "pi_test_webhook"


async def test_redelivery_is_acknowledged(stripe_client, booking_factory):
    booking = await booking_factory()
    payload = completed_event(booking.stripe_session_id)

    await post_event(stripe_client, payload, sign(payload))
    response = await post_event(stripe_client, payload, sign(payload))

    assert response.status_code == 200
    assert response.json()["outcome"] == "already_confirmed"


async def test_unknown_session_is_acknowledged(stripe_client):
    payload = completed_event("cs_test_nobody")

    response = await post_event(stripe_client, payload, sign(payload))

    assert response.status_code == 200
    assert response.json()["outcome"] == "not_found"


async def test_missing_signature_header(stripe_client):
    response = await post_event(stripe_client, completed_event("cs_test_1"), None)

    assert response.status_code == 400


async def test_wrong_secret_is_rejected(stripe_client, booking_factory, session_maker):
    booking = await booking_factory()
    payload = completed_event(booking.stripe_session_id)

    response = await post_event(stripe_client, payload, sign(payload, "whsec_wrong"))

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid signature"
    async with session_maker() as session:
        stored = await session.scalar(select(Booking).where(Booking.id == booking.id))
        assert stored.status == "pending"


async def test_tampered_payload_is_rejected(stripe_client):
    payload = completed_event("cs_test_1")
    signature = sign(payload)

    response = await post_event(stripe_client, payload.replace("cs_test_1", "cs_test_2"), signature)

    assert response.status_code == 400


async def test_gateway_without_secret_rejects_everything():
    gateway = StripeGateway(secret_key="sk_test_unused")
    gateway.webhook_secret = None
    payload = completed_event("cs_test_1")

    assert gateway.verify_webhook(payload.encode(), sign(payload)) is None


async def test_database_failure_is_not_acknowledged(
    stripe_client, booking_factory, session_maker, monkeypatch
):
    booking = await booking_factory()
    payload = completed_event(booking.stripe_session_id)

    async def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(AsyncSession, "commit", failing_commit)
    # Let the server error reach the response instead of the test
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as raw_client:
        response = await post_event(raw_client, payload, sign(payload))
    monkeypatch.undo()

    assert response.status_code == 500
    async with session_maker() as session:
        stored = await session.scalar(select(Booking).where(Booking.id == booking.id))
        assert stored.status == "pending"
        assert stored.paid_at is None
