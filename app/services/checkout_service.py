"""Checkout: turn a priced stay into a pending booking and a Stripe session."""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import PaymentError, PriceChanged, ValidationError
from app.domain.booking_state import BookingStatus
from app.domain.fees import RevenueSplit, application_fee
from app.gateways.base import CheckoutSessionRequest, PaymentGateway
from app.gateways.stripe_gateway import StripeGateway
from app.models.booking import Booking
from app.models.user import User
from app.schemas.checkout import CheckoutRequest
from app.services.quote_service import QuoteService, quote_service
from app.utils.booking_number import generate_booking_number

logger = logging.getLogger(__name__)


@dataclass
class CheckoutResult:
    booking: Booking
    checkout_url: str
    session_id: str


class CheckoutService:
    """Service for starting a guest checkout."""

    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        quotes: QuoteService | None = None,
    ) -> None:
        self.gateway = gateway or StripeGateway()
        self.quotes = quotes or quote_service

    async def create_checkout(
        self,
        db: AsyncSession,
        request: CheckoutRequest,
        user: User | None = None,
    ) -> CheckoutResult:
        """Price the stay server-side, open a Stripe session and record a pending booking.

        The session is created before the booking row so a Stripe failure
        leaves nothing behind. The booking id travels in the session
        metadata and the session id is stored on the booking; either one
        lets the webhook find it.

        Raises:
            PriceChanged: the client's expected total differs from the server quote
            DateRangeUnavailable, BelowMinimumStay: the live PMS calendar refused the stay
            PaymentError: Stripe refused to create the session
        """
        prop = await self.quotes.get_property(db, request.property_id)
        broker = await db.get(User, prop.owner_id)
        if broker is None or not broker.stripe_connected_account_id:
            raise ValidationError("This property cannot accept payments yet")

        quote = await self.quotes.build_quote(
            db,
            prop,
            request.check_in,
            request.check_out,
            request.guests,
            extras=request.extras,
        )
        if request.expected_total_cents is not None and request.expected_total_cents != quote.total_cents:
            raise PriceChanged(request.expected_total_cents, quote.total_cents)
        await self.quotes.confirm_availability(
            db, prop, quote.check_in, quote.check_out, quote.guests
        )

        booking = Booking(
            id=uuid.uuid4(),
            booking_number=await generate_booking_number(db),
            property_id=prop.id,
            user_id=user.id if user else None,
            check_in=quote.check_in,
            check_out=quote.check_out,
            nights=quote.nights,
            guests=quote.guests,
            adults=request.adults,
            children=request.children,
            base_total=quote.base_total_cents,
            extras_total=quote.extras_cents,
            city_tax=quote.city_tax_cents,
            total_price=quote.total_cents,
            currency=quote.currency,
            fee_percent=quote.fee_percent,
            platform_fee=quote.platform_fee_cents,
            broker_net=quote.broker_net_cents,
            status=BookingStatus.PENDING.value,
            guest_email=str(request.guest.email),
            guest_first_name=request.guest.first_name,
            guest_last_name=request.guest.last_name,
            guest_phone=request.guest.phone,
            guest_note=request.guest.note,
        )

        fee = application_fee(
            RevenueSplit(quote.platform_fee_cents, quote.broker_net_cents),
            quote.withholding_tax_cents,
        )
        # A destination charge cannot keep more than the guest pays
        fee = min(fee, quote.total_cents)

        base_url = settings.public_base_url.rstrip("/")
        session = await self.gateway.create_checkout_session(
            CheckoutSessionRequest(
                amount=quote.total_cents,
                currency=quote.currency,
                description=f"{prop.title}: {quote.nights} nights from {quote.check_in.isoformat()}",
                customer_email=booking.guest_email,
                success_url=f"{base_url}/booking/success?booking={booking.booking_number}",
                cancel_url=f"{base_url}/properties/{prop.id}",
                application_fee_amount=fee,
                destination_account=broker.stripe_connected_account_id,
                metadata={
                    "booking_id": str(booking.id),
                    "booking_number": booking.booking_number,
                    "property_id": str(prop.id),
                },
            )
        )
        if not session.success or not session.session_id:
            logger.warning(
                f"Checkout for property {prop.id} failed at Stripe: {session.error_message}"
            )
            raise PaymentError("Could not start the payment, please try again")

        booking.stripe_session_id = session.session_id
        db.add(booking)
        await db.flush()

        logger.info(
            f"Checkout session {session.session_id} created for booking "
            f"{booking.booking_number} ({quote.total_cents} {quote.currency})"
        )
        return CheckoutResult(
            booking=booking,
            checkout_url=session.checkout_url or "",
            session_id=session.session_id,
        )


checkout_service = CheckoutService()
