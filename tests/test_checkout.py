"""Tests for checkout: quote, Stripe session and pending booking."""

import json
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    BelowMinimumStay,
    DateRangeUnavailable,
    NotFoundError,
    PaymentError,
    PriceChanged,
    ValidationError,
)
from app.models import Booking, CityTaxDefault, PmsIntegration
from app.schemas.checkout import CheckoutRequest

from conftest import APARTMENT_ID, CHECK_IN, CHECK_OUT, SMOOBU_USER_ID


def checkout_request(property_id, **overrides) -> CheckoutRequest:
    data = {
        "property_id": str(property_id),
        "check_in": CHECK_IN.isoformat(),
        "check_out": CHECK_OUT.isoformat(),
        "adults": 2,
        "guest": {"first_name": "Giulia", "last_name": "Rossi", "email": "giulia@example.com"},
    }
    data.update(overrides)
    return CheckoutRequest.model_validate(data)


async def booking_count(db) -> int:
    return await db.scalar(select(func.count()).select_from(Booking))


async def test_checkout_creates_pending_booking(db, checkout, gateway, property_, broker):
    result = await checkout.create_checkout(db, checkout_request(property_.id))
    await db.commit()

    booking = result.booking
    assert booking.status == "pending"
    assert booking.stripe_session_id == result.session_id == "cs_test_1"
    assert booking.total_price == 22000
    assert booking.base_total == 22000
    assert booking.guests == 2
    assert booking.booking_number.startswith("ES-")
    assert result.checkout_url.endswith("cs_test_1")

    [session] = gateway.sessions
    assert session.amount == 22000
    assert session.currency == "eur"
    assert session.destination_account == broker.stripe_connected_account_id
    assert session.application_fee_amount == 2200 + 4620
    assert session.metadata["booking_id"] == str(booking.id)
    assert session.customer_email == "giulia@example.com"
    assert await booking_count(db) == 1


async def test_checkout_includes_costs_extras_and_city_tax(db, checkout, gateway, property_):
    property_.additional_costs = [{"label": "Final cleaning", "amount": 6000, "per": "stay"}]
    property_.extras = [{"name": "Breakfast", "amount": 1000, "per": "night_per_guest"}]
    db.add(CityTaxDefault(city="Roma", country="IT", amount=350, max_nights=10))
    await db.commit()

    result = await checkout.create_checkout(db, checkout_request(property_.id, extras=[0]))

    booking = result.booking
    assert booking.extras_total == 6000 + 1000 * 2 * 2
    assert booking.city_tax == 350 * 2 * 2
    assert booking.total_price == 22000 + 10000 + 1400
    assert gateway.sessions[0].amount == booking.total_price


async def test_price_changed_is_rejected_before_stripe(db, checkout, gateway, property_):
    with pytest.raises(PriceChanged) as exc_info:
        await checkout.create_checkout(db, checkout_request(property_.id, expected_total_cents=20000))

    assert exc_info.value.actual == 22000
    assert gateway.sessions == []
    assert await booking_count(db) == 0


async def test_matching_expected_total_is_accepted(db, checkout, property_):
    result = await checkout.create_checkout(
        db, checkout_request(property_.id, expected_total_cents=22000)
    )
    assert result.booking.total_price == 22000


async def test_stripe_failure_leaves_no_booking(db, checkout, gateway, property_):
    gateway.fail_checkout = True

    with pytest.raises(PaymentError):
        await checkout.create_checkout(db, checkout_request(property_.id))

    assert await booking_count(db) == 0


async def test_broker_without_stripe_account(db, checkout, property_, broker):
    broker.stripe_connected_account_id = None
    await db.commit()

    with pytest.raises(ValidationError):
        await checkout.create_checkout(db, checkout_request(property_.id))


async def test_unpublished_property_is_not_found(db, checkout, property_):
    property_.status = "draft"
    await db.commit()

    with pytest.raises(NotFoundError):
        await checkout.create_checkout(db, checkout_request(property_.id))


async def test_too_many_guests(db, checkout, property_):
    with pytest.raises(ValidationError):
        await checkout.create_checkout(db, checkout_request(property_.id, adults=4, children=1))


# ============ LIVE AVAILABILITY ============


async def test_checkout_rechecks_availability_with_pms(db, checkout, property_, smoobu):
    await checkout.create_checkout(db, checkout_request(property_.id))

    [request] = smoobu.availability_requests
    body = json.loads(request.content)
    assert body["apartments"] == [APARTMENT_ID]
    assert body["customerId"] == SMOOBU_USER_ID
    assert body["arrivalDate"] == CHECK_IN.isoformat()
    assert body["departureDate"] == CHECK_OUT.isoformat()
    assert body["guests"] == 2


async def test_night_sold_after_quote_is_caught_before_stripe(db, checkout, quotes, gateway, property_, smoobu):
    # Warm the rate cache, then the night sells on another channel
    await quotes.build_quote(db, property_, CHECK_IN, CHECK_OUT, 2)
    smoobu.overrides[CHECK_IN] = {"available": 0}

    with pytest.raises(DateRangeUnavailable):
        await checkout.create_checkout(db, checkout_request(property_.id))

    assert gateway.sessions == []
    assert await booking_count(db) == 0
    # The stale window was dropped, so the next quote sees the blocked night
    with pytest.raises(DateRangeUnavailable):
        await quotes.build_quote(db, property_, CHECK_IN, CHECK_OUT, 2)
    assert len(smoobu.rate_requests) == 2


async def test_pms_minimum_stay_refusal(db, checkout, gateway, property_, smoobu):
    smoobu.availability_error = {"errorCode": 1, "message": "Minimum stay", "minimumLengthOfStay": 4}

    with pytest.raises(BelowMinimumStay) as exc_info:
        await checkout.create_checkout(db, checkout_request(property_.id))

    assert exc_info.value.min_stay == 4
    assert exc_info.value.nights == 2
    assert gateway.sessions == []


async def test_pms_guest_limit_refusal(db, checkout, gateway, property_, smoobu):
    smoobu.availability_error = {"errorCode": 2, "message": "Too many guests", "numberOfGuest": 1}

    with pytest.raises(ValidationError) as exc_info:
        await checkout.create_checkout(db, checkout_request(property_.id))

    assert "at most 1 guests" in exc_info.value.detail
    assert gateway.sessions == []


async def test_checkout_requires_pms_user_id(db, checkout, gateway, property_, smoobu):
    integration = await db.scalar(select(PmsIntegration))
    integration.pms_user_id = None
    await db.commit()

    with pytest.raises(ValidationError):
        await checkout.create_checkout(db, checkout_request(property_.id))

    assert smoobu.availability_requests == []
    assert gateway.sessions == []


async def test_checkout_api(client, property_, gateway):
    response = await client.post(
        "/api/v1/checkout",
        json={
            "property_id": str(property_.id),
            "check_in": CHECK_IN.isoformat(),
            "check_out": CHECK_OUT.isoformat(),
            "adults": 2,
            "guest": {"first_name": "Giulia", "last_name": "Rossi", "email": "giulia@example.com"},
            "expected_total_cents": 22000,
        },
    )

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["session_id"] == "cs_test_1"
    assert data["total_cents"] == 22000
    assert data["currency"] == "eur"
    assert data["booking_number"].startswith("ES-")


async def test_checkout_api_blocked_night(client, property_, smoobu):
    smoobu.overrides[CHECK_IN + timedelta(days=1)] = {"available": 0}

    response = await client.post(
        "/api/v1/checkout",
        json={
            "property_id": str(property_.id),
            "check_in": CHECK_IN.isoformat(),
            "check_out": CHECK_OUT.isoformat(),
            "guest": {"first_name": "Giulia", "last_name": "Rossi", "email": "giulia@example.com"},
        },
    )

    assert response.status_code == 409
    assert response.json()["code"] == "night_unavailable"


async def test_checkout_api_price_changed(client, property_):
    response = await client.post(
        "/api/v1/checkout",
        json={
            "property_id": str(property_.id),
            "check_in": CHECK_IN.isoformat(),
            "check_out": CHECK_OUT.isoformat(),
            "guest": {"first_name": "Giulia", "last_name": "Rossi", "email": "giulia@example.com"},
            "expected_total_cents": 1,
        },
    )

    assert response.status_code == 409
    assert response.json()["code"] == "price_changed"


async def test_checkout_api_rejects_reversed_dates(client, property_):
    response = await client.post(
        "/api/v1/checkout",
        json={
            "property_id": str(property_.id),
            "check_in": CHECK_OUT.isoformat(),
            "check_out": CHECK_IN.isoformat(),
            "guest": {"first_name": "Giulia", "last_name": "Rossi", "email": "giulia@example.com"},
        },
    )

    assert response.status_code == 422


async def test_checkout_api_night_sold_since_quote(client, property_, smoobu, gateway):
    quote = await client.post(
        f"/api/v1/properties/{property_.id}/quote",
        json={"check_in": CHECK_IN.isoformat(), "check_out": CHECK_OUT.isoformat()},
    )
    assert quote.status_code == 200
    smoobu.overrides[CHECK_IN] = {"available": 0}

    response = await client.post(
        "/api/v1/checkout",
        json={
            "property_id": str(property_.id),
            "check_in": CHECK_IN.isoformat(),
            "check_out": CHECK_OUT.isoformat(),
            "guest": {"first_name": "Giulia", "last_name": "Rossi", "email": "giulia@example.com"},
        },
    )

    assert response.status_code == 409
    assert response.json()["code"] == "date_range_unavailable"
    assert gateway.sessions == []
