"""User-related database models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base

if TYPE_CHECKING:
    from app.models.property import PmsIntegration, Property


class User(Base):
    """Account mirrored from the auth provider.

    Credentials live with the provider; only identity, role and the Stripe
    Connect account needed for payouts are stored here.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="guest"
    )  # guest, broker, admin

    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    phone: Mapped[str | None] = mapped_column(String(30))

    # Stripe Connect (brokers only)
    stripe_connected_account_id: Mapped[str | None] = mapped_column(String(64))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    properties: Mapped[list["Property"]] = relationship("Property", back_populates="owner")
    pms_integration: Mapped["PmsIntegration | None"] = relationship(
        "PmsIntegration", back_populates="user", uselist=False
    )

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or self.email

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_broker(self) -> bool:
        return self.role == "broker"
