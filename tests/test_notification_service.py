"""Tests for SendGrid e-mail delivery."""

import json
from datetime import date

import httpx
import pytest

from app.config import settings
from app.models.booking import Booking
from app.services.notification_service import SENDGRID_SEND_URL, NotificationService


def make_booking() -> Booking:
    return Booking(
        booking_number="ES-ABC123",
        check_in=date(2030, 6, 10),
        check_out=date(2030, 6, 12),
        nights=2,
        guests=2,
        base_total=22000,
        total_price=22000,
        currency="eur",
        refund_amount=0,
        guest_email="giulia@example.com",
        guest_first_name="Giulia",
    )


@pytest.fixture
def sent():
    return []


@pytest.fixture
def mailer(sent):
    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(request)
        return httpx.Response(202)

    return NotificationService(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


async def test_skips_when_sendgrid_not_configured(mailer, sent, monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", None)

    assert await mailer.send_booking_confirmation(make_booking(), "Attico") is False
    assert sent == []


async def test_confirmation_is_sent(mailer, sent, monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test")

    assert await mailer.send_booking_confirmation(make_booking(), "Attico Trastevere") is True

    request = sent[0]
    assert str(request.url) == SENDGRID_SEND_URL
    assert request.headers["Authorization"] == "Bearer SG.test"
    body = json.loads(request.content)
    assert body["personalizations"][0]["to"][0]["email"] == "giulia@example.com"
    assert "ES-ABC123" in body["subject"]
    assert "220.00 EUR" in body["content"][0]["value"]


async def test_rejected_email_returns_false(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test")
    mailer = NotificationService(
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(500, text="nope"))
        )
    )

    assert await mailer.send_email("x@example.com", "Hi", "<p>Hi</p>") is False


async def test_transport_error_returns_false(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test")

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    mailer = NotificationService(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    assert await mailer.send_email("x@example.com", "Hi", "<p>Hi</p>") is False
