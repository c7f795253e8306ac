"""Property and PMS integration models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, LargeBinary, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base

if TYPE_CHECKING:
    from app.models.user import User


class Property(Base):
    """A rentable unit managed by a broker and priced by their PMS."""

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    country: Mapped[str] = mapped_column(String(2), nullable=False, default="IT")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="eur")
    max_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    # Apartment id on the broker's Smoobu account
    smoobu_property_id: Mapped[int | None] = mapped_column(Integer, index=True)

    # Own city tax rule, overrides the (city, country) default when set
    city_tax_amount: Mapped[int | None] = mapped_column(Integer)  # cents per guest per night
    city_tax_max_nights: Mapped[int | None] = mapped_column(Integer)

    # [{label, amount, per, max_nights}]
    additional_costs: Mapped[list | None] = mapped_column(JSON)
    # [{name, amount, per, max_nights}]
    extras: Mapped[list | None] = mapped_column(JSON)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft", index=True
    )  # draft, published, archived

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="properties")

    @property
    def is_published(self) -> bool:
        return self.status == "published"


class PmsIntegration(Base):
    """A broker's connection to their property management system."""

    __tablename__ = "pms_integrations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    provider: Mapped[str] = mapped_column(String(20), nullable=False, default="smoobu")
    api_key_encrypted: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    pms_user_id: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="pms_integration")
