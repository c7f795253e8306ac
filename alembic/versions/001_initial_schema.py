"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-02-02

Creates all initial tables for the Elite Stays booking backend:
- Users, properties and PMS integrations
- Bookings
- Broker fee overrides and city tax defaults
- Operator event log
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== USERS ====================
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="guest"),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("phone", sa.String(30)),
        sa.Column("stripe_connected_account_id", sa.String(64)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== PROPERTIES ====================
    op.create_table(
        "properties",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("owner_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False, index=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("city", sa.String(100), nullable=False, index=True),
        sa.Column("country", sa.String(2), nullable=False, server_default="IT"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="eur"),
        sa.Column("max_guests", sa.Integer, nullable=False, server_default="2"),
        sa.Column("smoobu_property_id", sa.Integer, index=True),
        sa.Column("city_tax_amount", sa.Integer),
        sa.Column("city_tax_max_nights", sa.Integer),
        sa.Column("additional_costs", sa.JSON),
        sa.Column("extras", sa.JSON),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft", index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "pms_integrations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        sa.Column("provider", sa.String(20), nullable=False, server_default="smoobu"),
        sa.Column("api_key_encrypted", sa.LargeBinary, nullable=False),
        sa.Column("pms_user_id", sa.Integer),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_number", sa.String(20), unique=True, nullable=False, index=True),
        sa.Column("property_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("properties.id"), nullable=False, index=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), index=True),
        sa.Column("check_in", sa.Date, nullable=False, index=True),
        sa.Column("check_out", sa.Date, nullable=False, index=True),
        sa.Column("nights", sa.Integer, nullable=False),
        sa.Column("guests", sa.Integer, nullable=False, server_default="1"),
        sa.Column("adults", sa.Integer, server_default="1"),
        sa.Column("children", sa.Integer, server_default="0"),
        sa.Column("base_total", sa.Integer, nullable=False),
        sa.Column("extras_total", sa.Integer, server_default="0"),
        sa.Column("city_tax", sa.Integer, server_default="0"),
        sa.Column("total_price", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), server_default="eur"),
        sa.Column("fee_percent", sa.Integer, nullable=False, server_default="10"),
        sa.Column("platform_fee", sa.Integer, nullable=False, server_default="0"),
        sa.Column("broker_net", sa.Integer, nullable=False, server_default="0"),
        sa.Column("withholding_tax", sa.Integer),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("guest_email", sa.String(255), nullable=False),
        sa.Column("guest_first_name", sa.String(100)),
        sa.Column("guest_last_name", sa.String(100)),
        sa.Column("guest_phone", sa.String(30)),
        sa.Column("guest_note", sa.Text),
        sa.Column("stripe_session_id", sa.String(255), unique=True, index=True),
        sa.Column("stripe_payment_intent_id", sa.String(255), index=True),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("settlement_conflict_at", sa.DateTime(timezone=True)),
        sa.Column("needs_refund", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("pms_reservation_id", sa.Integer),
        sa.Column("cancelled_by", sa.String(10)),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("refund_amount", sa.Integer, server_default="0"),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("check_in < check_out", name="check_booking_dates"),
    )
    # Settlement overlap check scans confirmed bookings per property
    op.create_index(
        "ix_bookings_property_status_dates",
        "bookings",
        ["property_id", "status", "check_in", "check_out"],
    )

    # ==================== FEES & TAX ====================
    op.create_table(
        "broker_fee_overrides",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        sa.Column("fee_percent", sa.Integer, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("fee_percent BETWEEN 0 AND 100", name="check_fee_percent_range"),
    )

    op.create_table(
        "city_tax_defaults",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("country", sa.String(2), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("max_nights", sa.Integer),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("city", "country", name="unique_city_tax_city_country"),
    )

    # ==================== EVENT LOG ====================
    op.create_table(
        "event_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("level", sa.String(10), nullable=False, index=True),
        sa.Column("source", sa.String(50), nullable=False, index=True),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("event_metadata", sa.JSON),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("event_logs")
    op.drop_table("city_tax_defaults")
    op.drop_table("broker_fee_overrides")
    op.drop_index("ix_bookings_property_status_dates", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("pms_integrations")
    op.drop_table("properties")
    op.drop_table("users")
