"""Payment settlement: confirm pending bookings from Stripe webhook events.

Stripe delivers at least once and in any order, so every transition here is
a conditional UPDATE guarded by the current status. A duplicate delivery
matches zero rows and becomes a no-op instead of a second confirmation.

The overlap check runs inside the same UPDATE. Under READ COMMITTED two
overlapping bookings settling at the same instant can both pass it; such a
pair is rare and shows up in the operator's bookings view.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import exists, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.config import settings
from app.core.encryption import decrypt_api_key
from app.core.exceptions import SettlementConflict, UpstreamUnavailable
from app.domain.availability import ranges_overlap
from app.domain.booking_state import BookingStatus, can_transition, statuses_leading_to
from app.domain.fees import split_revenue, withholding_tax
from app.models.booking import Booking
from app.models.property import PmsIntegration, Property
from app.schemas.smoobu import SmoobuReservationRequest
from app.services.event_log_service import EventLogService, event_log_service
from app.services.fee_service import FeeService, fee_service
from app.services.notification_service import NotificationService, notification_service
from app.services.pms_service import SmoobuClient, smoobu_client

logger = logging.getLogger(__name__)

EVENT_SOURCE = "stripe-webhook"

CHECKOUT_COMPLETED = "checkout.session.completed"
ASYNC_PAYMENT_SUCCEEDED = "checkout.session.async_payment_succeeded"
SETTLING_EVENTS = frozenset({CHECKOUT_COMPLETED, ASYNC_PAYMENT_SUCCEEDED})
# Logged for the operator, never acted on
NOTED_EVENTS = frozenset({"charge.refunded", "checkout.session.async_payment_failed"})


class SettlementOutcome(str, Enum):
    CONFIRMED = "confirmed"
    ALREADY_CONFIRMED = "already_confirmed"
    NOT_PENDING = "not_pending"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    AWAITING_PAYMENT = "awaiting_payment"
    IGNORED = "ignored"


@dataclass
class SettlementResult:
    outcome: SettlementOutcome
    booking_id: UUID | None = None
    notification_sent: bool = False
    pms_synced: bool = False


def _overlapping_confirmed(booking: Booking):
    other = aliased(Booking)
    return exists().where(
        other.property_id == booking.property_id,
        other.id != booking.id,
        other.status == BookingStatus.CONFIRMED.value,
        other.check_in < booking.check_out,
        other.check_out > booking.check_in,
    )


class SettlementService:
    """Apply Stripe events to bookings."""

    def __init__(
        self,
        fees: FeeService | None = None,
        notifier: NotificationService | None = None,
        pms: SmoobuClient | None = None,
        events: EventLogService | None = None,
    ) -> None:
        self.fees = fees or fee_service
        self.notifier = notifier or notification_service
        self.pms = pms or smoobu_client
        self.events = events or event_log_service

    async def handle_event(self, db: AsyncSession, event: dict[str, Any]) -> SettlementResult:
        """Process one verified webhook event.

        Every outcome except a database error is an acknowledgement: the
        caller answers 200 and Stripe stops retrying. Database errors
        propagate so the delivery is retried.
        """
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}

        if event_type not in SETTLING_EVENTS:
            if event_type in NOTED_EVENTS:
                await self.events.record(
                    db,
                    "info",
                    EVENT_SOURCE,
                    f"Received {event_type}, no automatic action taken",
                    {"event_id": event.get("id"), "object_id": obj.get("id")},
                )
                await db.commit()
            logger.info(f"Ignoring Stripe event {event.get('id')} of type {event_type}")
            return SettlementResult(outcome=SettlementOutcome.IGNORED)

        if event_type == CHECKOUT_COMPLETED and obj.get("payment_status") == "unpaid":
            # Delayed payment method; async_payment_succeeded settles it later
            logger.info(f"Checkout session {obj.get('id')} completed but not yet paid")
            return SettlementResult(outcome=SettlementOutcome.AWAITING_PAYMENT)

        booking = await self._find_booking(db, obj)
        if booking is None:
            logger.warning(
                f"No booking for Stripe session {obj.get('id')} "
                f"(event {event.get('id')}), acknowledging"
            )
            return SettlementResult(outcome=SettlementOutcome.NOT_FOUND)

        if booking.status == BookingStatus.CONFIRMED.value:
            return SettlementResult(outcome=SettlementOutcome.ALREADY_CONFIRMED, booking_id=booking.id)
        if not can_transition(booking.status, BookingStatus.CONFIRMED.value):
            logger.warning(f"Payment received for {booking.status} booking {booking.booking_number}")
            return SettlementResult(outcome=SettlementOutcome.NOT_PENDING, booking_id=booking.id)

        return await self._settle(db, booking, obj.get("payment_intent"))

    async def _find_booking(self, db: AsyncSession, session: dict[str, Any]) -> Booking | None:
        session_id = session.get("id")
        if session_id:
            booking = await db.scalar(select(Booking).where(Booking.stripe_session_id == session_id))
            if booking is not None:
                return booking

        booking_id = (session.get("metadata") or {}).get("booking_id")
        if booking_id:
            try:
                booking = await db.get(Booking, UUID(booking_id))
            except ValueError:
                booking = None
            if booking is not None:
                return booking

        payment_intent = session.get("payment_intent")
        if payment_intent:
            return await db.scalar(
                select(Booking).where(Booking.stripe_payment_intent_id == payment_intent)
            )
        return None

    async def _settle(
        self,
        db: AsyncSession,
        booking: Booking,
        payment_intent_id: str | None,
    ) -> SettlementResult:
        prop = await db.get(Property, booking.property_id)
        fee_percent = await self.fees.resolve_fee_percent(db, prop.owner_id)
        split = split_revenue(booking.base_total, fee_percent)
        now = datetime.now(UTC)

        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status.in_(statuses_leading_to(BookingStatus.CONFIRMED.value)),
                ~_overlapping_confirmed(booking),
            )
            .values(
                status=BookingStatus.CONFIRMED.value,
                fee_percent=fee_percent,
                platform_fee=split.platform_fee_cents,
                broker_net=split.broker_net_cents,
                withholding_tax=withholding_tax(booking.base_total, settings.withholding_tax_percent),
                stripe_payment_intent_id=payment_intent_id or booking.stripe_payment_intent_id,
                paid_at=now,
                confirmed_at=now,
            )
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            return await self._resolve_unmatched(db, booking, payment_intent_id, now)

        await db.commit()
        await db.refresh(booking)
        logger.info(
            f"Booking {booking.booking_number} confirmed "
            f"(total {booking.total_price}, fee {fee_percent}%)"
        )

        notification_sent = await self._send_confirmation(booking, prop)
        pms_synced = await self._push_to_pms(db, booking, prop)
        await self._record_side_effect_failures(db, booking, notification_sent, pms_synced)

        return SettlementResult(
            outcome=SettlementOutcome.CONFIRMED,
            booking_id=booking.id,
            notification_sent=notification_sent,
            pms_synced=pms_synced,
        )

    async def _resolve_unmatched(
        self,
        db: AsyncSession,
        booking: Booking,
        payment_intent_id: str | None,
        now: datetime,
    ) -> SettlementResult:
        """Work out why the conditional confirm matched nothing."""
        await db.refresh(booking)
        if booking.status == BookingStatus.CONFIRMED.value:
            return SettlementResult(outcome=SettlementOutcome.ALREADY_CONFIRMED, booking_id=booking.id)
        if not can_transition(booking.status, BookingStatus.CONFIRMED.value):
            logger.warning(f"Payment received for {booking.status} booking {booking.booking_number}")
            return SettlementResult(outcome=SettlementOutcome.NOT_PENDING, booking_id=booking.id)

        # Still pending: another confirmed stay took these dates after checkout began
        booking.settlement_conflict_at = now
        booking.needs_refund = True
        booking.paid_at = now
        clashing = await self._clashing_bookings(db, booking)
        if payment_intent_id:
            booking.stripe_payment_intent_id = payment_intent_id
        conflict = SettlementConflict(
            booking.id,
            f"Booking {booking.booking_number} was paid but overlaps a confirmed booking; refund required",
        )
        await self.events.record(
            db,
            "error",
            EVENT_SOURCE,
            conflict.detail,
            {
                "code": conflict.code,
                "booking_id": str(booking.id),
                "property_id": str(booking.property_id),
                "check_in": booking.check_in.isoformat(),
                "check_out": booking.check_out.isoformat(),
                "payment_intent": payment_intent_id,
                "conflicting_bookings": [b.booking_number for b in clashing],
            },
        )
        await db.commit()
        logger.error(
            f"Settlement conflict for booking {booking.booking_number}: "
            f"dates already confirmed for property {booking.property_id}"
        )
        return SettlementResult(outcome=SettlementOutcome.CONFLICT, booking_id=booking.id)

    async def _clashing_bookings(self, db: AsyncSession, booking: Booking) -> list[Booking]:
        """Confirmed bookings of the same property that overlap ``booking``."""
        candidates = await db.scalars(
            select(Booking)
            .where(
                Booking.property_id == booking.property_id,
                Booking.id != booking.id,
                Booking.status == BookingStatus.CONFIRMED.value,
                Booking.check_out > booking.check_in,
            )
            .order_by(Booking.check_in)
        )
        return [
            other
            for other in candidates
            if ranges_overlap(other.check_in, other.check_out, booking.check_in, booking.check_out)
        ]

    async def _send_confirmation(self, booking: Booking, prop: Property) -> bool:
        try:
            return await self.notifier.send_booking_confirmation(booking, prop.title)
        except Exception:
            logger.exception(f"Confirmation email for booking {booking.booking_number} failed")
            return False

    async def _push_to_pms(self, db: AsyncSession, booking: Booking, prop: Property) -> bool:
        """Block the dates in the broker's PMS calendar."""
        if prop.smoobu_property_id is None:
            return False
        integration = await db.scalar(
            select(PmsIntegration).where(PmsIntegration.user_id == prop.owner_id)
        )
        if integration is None:
            return False

        reservation = SmoobuReservationRequest(
            arrival_date=booking.check_in,
            departure_date=booking.check_out,
            channel_id=settings.smoobu_channel_id,
            apartment_id=prop.smoobu_property_id,
            first_name=booking.guest_first_name,
            last_name=booking.guest_last_name,
            email=booking.guest_email,
            phone=booking.guest_phone,
            notice=f"{booking.booking_number}\n{booking.guest_note or ''}".strip(),
            adults=booking.adults,
            children=booking.children,
            price=booking.total_price / 100,
        )
        try:
            reservation_id = await self.pms.create_reservation(
                decrypt_api_key(integration.api_key_encrypted), reservation
            )
        except UpstreamUnavailable:
            logger.exception(f"PMS reservation for booking {booking.booking_number} failed")
            return False

        try:
            booking.pms_reservation_id = reservation_id
            await db.commit()
        except SQLAlchemyError:
            logger.exception(f"Could not store PMS reservation id for {booking.booking_number}")
            await db.rollback()
        return True

    async def _record_side_effect_failures(
        self,
        db: AsyncSession,
        booking: Booking,
        notification_sent: bool,
        pms_synced: bool,
    ) -> None:
        failures = []
        if not notification_sent:
            failures.append("confirmation email")
        if not pms_synced:
            failures.append("PMS reservation")
        if not failures:
            return

        try:
            await self.events.record(
                db,
                "warning",
                EVENT_SOURCE,
                f"Booking {booking.booking_number} confirmed without {' and '.join(failures)}",
                {"booking_id": str(booking.id)},
            )
            await db.commit()
        except SQLAlchemyError:
            logger.exception(f"Could not record side effect failures for {booking.booking_number}")
            await db.rollback()


settlement_service = SettlementService()
