"""Booking database model."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.database import Base


class Booking(Base):
    """Booking model.

    All money columns are integer minor units of ``currency``.
    """

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )  # ES-XXXXXX
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("properties.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id"), index=True
    )  # guest account, null for anonymous checkout

    # Dates
    check_in: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    check_out: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    nights: Mapped[int] = mapped_column(Integer, nullable=False)

    # Guests
    guests: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    adults: Mapped[int] = mapped_column(Integer, default=1)
    children: Mapped[int] = mapped_column(Integer, default=0)

    # Pricing
    base_total: Mapped[int] = mapped_column(Integer, nullable=False)  # sum of nightly rates
    extras_total: Mapped[int] = mapped_column(Integer, default=0)
    city_tax: Mapped[int] = mapped_column(Integer, default=0)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)  # base + extras + city tax
    currency: Mapped[str] = mapped_column(String(3), default="eur")

    # Revenue split, fixed at settlement
    fee_percent: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    platform_fee: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    broker_net: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    withholding_tax: Mapped[int | None] = mapped_column(Integer)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True
    )  # pending, confirmed, cancelled

    # Guest details
    guest_email: Mapped[str] = mapped_column(String(255), nullable=False)
    guest_first_name: Mapped[str | None] = mapped_column(String(100))
    guest_last_name: Mapped[str | None] = mapped_column(String(100))
    guest_phone: Mapped[str | None] = mapped_column(String(30))
    guest_note: Mapped[str | None] = mapped_column(Text)

    # Payment
    stripe_session_id: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(255), index=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Settlement conflict (paid, but the dates were taken meanwhile)
    settlement_conflict_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    needs_refund: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # PMS
    pms_reservation_id: Mapped[int | None] = mapped_column(Integer)

    # Cancellation
    cancelled_by: Mapped[str | None] = mapped_column(String(10))  # broker, admin
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    refund_amount: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @property
    def guest_name(self) -> str:
        return " ".join(p for p in (self.guest_first_name, self.guest_last_name) if p)

    @property
    def is_paid(self) -> bool:
        return self.paid_at is not None
