"""Stripe payment gateway adapter.

The Stripe SDK is synchronous; calls are pushed to a worker thread so a
slow Stripe response never blocks the event loop.
"""

import asyncio
import json
import logging

import stripe

from app.config import settings
from app.gateways.base import (
    CheckoutSessionRequest,
    CheckoutSessionResult,
    PaymentGateway,
    RefundResult,
)

logger = logging.getLogger(__name__)


class StripeGateway(PaymentGateway):
    """Stripe Checkout with Connect destination charges."""

    def __init__(self, secret_key: str | None = None, webhook_secret: str | None = None):
        self.secret_key = secret_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret

    async def create_checkout_session(
        self,
        request: CheckoutSessionRequest,
    ) -> CheckoutSessionResult:
        """Create a Checkout Session paying out to the broker's connected account."""
        if not self.secret_key:
            return CheckoutSessionResult(
                success=False,
                error_message="Stripe not configured",
            )

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self.secret_key,
                mode="payment",
                customer_email=request.customer_email,
                line_items=[
                    {
                        "price_data": {
                            "currency": request.currency.lower(),
                            "product_data": {"name": request.description},
                            "unit_amount": request.amount,
                        },
                        "quantity": 1,
                    }
                ],
                payment_intent_data={
                    "application_fee_amount": request.application_fee_amount,
                    "transfer_data": {"destination": request.destination_account},
                    "metadata": request.metadata,
                },
                metadata=request.metadata,
                success_url=request.success_url,
                cancel_url=request.cancel_url,
            )
        except stripe.StripeError as e:
            logger.warning(f"Stripe checkout session creation failed: {e}")
            return CheckoutSessionResult(
                success=False,
                error_message=str(e),
            )

        return CheckoutSessionResult(
            success=True,
            session_id=session.id,
            checkout_url=session.url,
        )

    async def process_refund(
        self,
        payment_intent_id: str,
        amount: int | None,
        reason: str,
    ) -> RefundResult:
        """Refund a destination charge, pulling the transfer and fee back."""
        if not self.secret_key:
            return RefundResult(
                success=False,
                error_message="Stripe not configured",
            )

        params = {
            "api_key": self.secret_key,
            "payment_intent": payment_intent_id,
            "reason": "requested_by_customer",
            "reverse_transfer": True,
            "refund_application_fee": True,
            "metadata": {"reason": reason[:500]},
        }
        if amount is not None:
            params["amount"] = amount

        try:
            refund = await asyncio.to_thread(stripe.Refund.create, **params)
        except stripe.StripeError as e:
            logger.warning(f"Stripe refund for {payment_intent_id} failed: {e}")
            return RefundResult(
                success=False,
                error_message=str(e),
            )

        return RefundResult(
            success=refund.status in ("succeeded", "pending"),
            refund_id=refund.id,
            raw_response={"status": refund.status, "id": refund.id},
        )

    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Verify the Stripe-Signature header and return the event as a plain dict."""
        if not self.webhook_secret:
            logger.error("Stripe webhook secret not configured")
            return None

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError:
            return None
        except ValueError:
            return None

        return json.loads(payload)
