"""Back-office booking operations."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.encryption import decrypt_api_key
from app.core.exceptions import (
    AuthorizationError,
    InvalidBookingStatus,
    NotFoundError,
    UpstreamUnavailable,
)
from app.domain.booking_state import (
    BookingStatus,
    assert_booking_transition,
    statuses_leading_to,
)
from app.gateways.base import PaymentGateway
from app.gateways.stripe_gateway import StripeGateway
from app.models.booking import Booking
from app.models.property import PmsIntegration, Property
from app.models.user import User
from app.services.event_log_service import EventLogService, event_log_service
from app.services.notification_service import NotificationService, notification_service
from app.services.pms_service import SmoobuClient, smoobu_client

logger = logging.getLogger(__name__)


@dataclass
class CancellationResult:
    booking: Booking
    refunded: bool
    pms_synced: bool


class BookingService:
    """Listing and cancelling bookings for brokers and admins."""

    def __init__(
        self,
        gateway: PaymentGateway | None = None,
        pms: SmoobuClient | None = None,
        notifier: NotificationService | None = None,
        events: EventLogService | None = None,
    ) -> None:
        self.gateway = gateway or StripeGateway()
        self.pms = pms or smoobu_client
        self.notifier = notifier or notification_service
        self.events = events or event_log_service

    async def list_broker_bookings(
        self,
        db: AsyncSession,
        broker: User,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Booking], int]:
        """Bookings on the broker's properties, newest first. Admins see all."""
        query = select(Booking)
        if not broker.is_admin:
            query = query.join(Property, Property.id == Booking.property_id).where(
                Property.owner_id == broker.id
            )
        if status:
            query = query.where(Booking.status == status)

        total = await db.scalar(select(func.count()).select_from(query.subquery()))
        result = await db.execute(
            query.order_by(Booking.created_at.desc(), Booking.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total or 0

    async def get_booking_for_actor(self, db: AsyncSession, booking_id: UUID, actor: User) -> tuple[Booking, Property]:
        booking = await db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        prop = await db.get(Property, booking.property_id)
        if not actor.is_admin and prop.owner_id != actor.id:
            # Do not reveal other brokers' bookings
            raise NotFoundError("Booking", str(booking_id))
        return booking, prop

    async def cancel_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: User,
        reason: str | None = None,
    ) -> CancellationResult:
        """Cancel a pending or confirmed booking.

        Same discipline as the webhook writer: the status change is a
        conditional UPDATE, so a cancel racing a settlement either wins
        before the confirm (the webhook then sees ``cancelled``) or loses
        and cancels the confirmed booking with a refund.

        Raises:
            AuthorizationError: actor is neither broker nor admin
            InvalidBookingStatus: booking is already cancelled
        """
        if not (actor.is_broker or actor.is_admin):
            raise AuthorizationError("Only brokers and admins can cancel bookings")

        booking, prop = await self.get_booking_for_actor(db, booking_id, actor)
        assert_booking_transition(booking.status, BookingStatus.CANCELLED.value)
        now = datetime.now(UTC)

        result = await db.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status.in_(statuses_leading_to(BookingStatus.CANCELLED.value)),
            )
            .values(
                status=BookingStatus.CANCELLED.value,
                cancelled_at=now,
                cancelled_by="admin" if actor.is_admin else "broker",
                cancellation_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidBookingStatus("Booking is already cancelled")

        await db.refresh(booking)
        logger.info(f"Booking {booking.booking_number} cancelled by {actor.role} {actor.id}")

        refunded = await self._refund(db, booking)
        await db.commit()

        pms_synced = await self._cancel_in_pms(db, booking, prop)
        await self.notifier.send_booking_cancellation(booking, prop.title)

        return CancellationResult(booking=booking, refunded=refunded, pms_synced=pms_synced)

    async def _refund(self, db: AsyncSession, booking: Booking) -> bool:
        if not booking.is_paid or not booking.stripe_payment_intent_id:
            return False

        refund = await self.gateway.process_refund(
            booking.stripe_payment_intent_id,
            amount=None,
            reason=booking.cancellation_reason or "Cancelled by host",
        )
        if refund.success:
            booking.refund_amount = booking.total_price
            booking.needs_refund = False
            logger.info(f"Refund {refund.refund_id} issued for booking {booking.booking_number}")
            return True

        booking.needs_refund = True
        await self.events.record(
            db,
            "error",
            "booking-cancel",
            f"Refund for cancelled booking {booking.booking_number} failed",
            {"booking_id": str(booking.id), "error": refund.error_message},
        )
        return False

    async def _cancel_in_pms(self, db: AsyncSession, booking: Booking, prop: Property) -> bool:
        if booking.pms_reservation_id is None:
            return False
        integration = await db.scalar(
            select(PmsIntegration).where(PmsIntegration.user_id == prop.owner_id)
        )
        if integration is None:
            return False
        try:
            await self.pms.cancel_reservation(
                decrypt_api_key(integration.api_key_encrypted), booking.pms_reservation_id
            )
        except UpstreamUnavailable:
            logger.exception(f"PMS cancellation for booking {booking.booking_number} failed")
            return False
        return True


booking_service = BookingService()
