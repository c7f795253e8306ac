"""Transactional e-mail via SendGrid.

Every method is best-effort: it returns ``False`` instead of raising, so a
mail outage can never undo a booking that has already been paid for.
"""

import logging
from typing import Any

import httpx

from app.config import settings
from app.models.booking import Booking

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


def _format_money(amount_cents: int, currency: str) -> str:
    return f"{amount_cents / 100:.2f} {currency.upper()}"


class NotificationService:
    """Service for guest and broker e-mails."""

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """Send an email via SendGrid.

        Args:
            to_email: Recipient email
            subject: Email subject
            html_content: HTML body
            text_content: Plain text body

        Returns:
            bool: True if SendGrid accepted the message
        """
        if not settings.sendgrid_api_key:
            logger.info(f"SendGrid not configured, skipping email to {to_email}")
            return False

        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {
                "email": settings.email_from_address,
                "name": settings.email_from_name,
            },
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }
        if text_content:
            payload["content"].insert(0, {"type": "text/plain", "value": text_content})

        try:
            response = await self.http_client.post(
                SENDGRID_SEND_URL,
                headers={
                    "Authorization": f"Bearer {settings.sendgrid_api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.warning(f"SendGrid request failed for {to_email}: {e}")
            return False

        if response.status_code not in (200, 202):
            logger.warning(
                f"SendGrid rejected email to {to_email}: {response.status_code} {response.text[:200]}"
            )
            return False
        return True

    async def send_booking_confirmation(self, booking: Booking, property_title: str) -> bool:
        """Tell the guest their stay is confirmed."""
        total = _format_money(booking.total_price, booking.currency)
        greeting = booking.guest_first_name or "there"
        text = (
            f"Hi {greeting},\n\n"
            f"your booking {booking.booking_number} at {property_title} is confirmed.\n"
            f"Check-in: {booking.check_in.isoformat()}\n"
            f"Check-out: {booking.check_out.isoformat()}\n"
            f"Guests: {booking.guests}\n"
            f"Total paid: {total}\n"
        )
        html = (
            f"<p>Hi {greeting},</p>"
            f"<p>your booking <strong>{booking.booking_number}</strong> at "
            f"{property_title} is confirmed.</p>"
            f"<ul><li>Check-in: {booking.check_in.isoformat()}</li>"
            f"<li>Check-out: {booking.check_out.isoformat()}</li>"
            f"<li>Guests: {booking.guests}</li>"
            f"<li>Total paid: {total}</li></ul>"
        )
        return await self.send_email(
            to_email=booking.guest_email,
            subject=f"Booking confirmed - {booking.booking_number}",
            html_content=html,
            text_content=text,
        )

    async def send_booking_cancellation(self, booking: Booking, property_title: str) -> bool:
        refund_line = ""
        if booking.refund_amount:
            refund_line = f"A refund of {_format_money(booking.refund_amount, booking.currency)} is on its way."
        return await self.send_email(
            to_email=booking.guest_email,
            subject=f"Booking cancelled - {booking.booking_number}",
            html_content=(
                f"<p>Your booking <strong>{booking.booking_number}</strong> at "
                f"{property_title} has been cancelled.</p><p>{refund_line}</p>"
            ),
        )


notification_service = NotificationService()
