"""Base payment gateway interface.

Adapters only talk to the provider. Pricing, fee and booking rules stay in
the services that call them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class CheckoutSessionRequest:
    """Everything a hosted checkout page needs. Amounts in minor units."""

    amount: int
    currency: str
    description: str
    customer_email: str
    success_url: str
    cancel_url: str
    application_fee_amount: int
    destination_account: str
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class CheckoutSessionResult:
    """Result of creating a hosted checkout session."""

    success: bool
    session_id: str | None = None
    checkout_url: str | None = None
    error_message: str | None = None


@dataclass
class RefundResult:
    """Result of a refund operation."""

    success: bool
    refund_id: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @abstractmethod
    async def create_checkout_session(
        self,
        request: CheckoutSessionRequest,
    ) -> CheckoutSessionResult:
        """Create a hosted checkout session for a single booking."""

    @abstractmethod
    async def process_refund(
        self,
        payment_intent_id: str,
        amount: int | None,
        reason: str,
    ) -> RefundResult:
        """Refund a captured payment.

        Args:
            payment_intent_id: Provider payment id
            amount: Amount in minor units, ``None`` for the full charge
            reason: Free-text reason stored with the refund
        """

    @abstractmethod
    def verify_webhook(
        self,
        payload: bytes,
        signature: str,
    ) -> dict | None:
        """Verify webhook signature and parse payload.

        Returns:
            Parsed event dict if valid, None if invalid
        """
