"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

Creates the booking core tables:
- Customers
- Vehicles (catalog reference)
- Bookings
- Sequence counters
- Payment attempt ledger
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

    # ==================== CUSTOMERS ====================
    op.create_table(
        "customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.Column("date_of_birth", sa.Date),
        sa.Column("address", sa.Text),
        sa.Column("password_hash", sa.String(255)),
        sa.Column("verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== VEHICLES ====================
    op.create_table(
        "vehicles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(50)),
        sa.Column("visible", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("order_number", sa.String(20), unique=True, nullable=False, index=True),
        sa.Column("invoice_no", sa.String(20), unique=True, index=True),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=False, index=True),
        sa.Column("vehicle_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("vehicles.id"), nullable=False, index=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("pickup_location", sa.String(200)),
        sa.Column("dropoff_location", sa.String(200)),
        sa.Column("pickup_time", sa.String(10)),
        sa.Column("dropoff_time", sa.String(10)),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), server_default="EUR"),
        sa.Column("status", sa.String(20), nullable=False, index=True),
        sa.Column("payment_status", sa.String(20), nullable=False),
        sa.Column("payment_type", sa.String(20), nullable=False),
        sa.Column("transaction_id", sa.String(100)),
        sa.Column("extras", postgresql.JSONB),
        sa.Column("flight_info", postgresql.JSONB),
        sa.Column("comments", sa.Text),
        sa.Column("promotion_code", sa.String(50)),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "invoice_no IS NULL OR payment_status = 'Paid'",
            name="check_booking_invoice_requires_paid",
        ),
        sa.CheckConstraint("total_price >= 0", name="check_booking_total_price_non_negative"),
        sa.CheckConstraint("end_date > start_date", name="check_booking_dates_ordered"),
    )

    # ==================== SEQUENCE COUNTERS ====================
    op.create_table(
        "sequence_counters",
        sa.Column("name", sa.String(50), primary_key=True),
        sa.Column("next_value", sa.Integer),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== PAYMENT ATTEMPT LEDGER ====================
    op.create_table(
        "payment_attempt_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id"), index=True),
        sa.Column("external_order_id", sa.String(100), index=True),
        sa.Column("merchant_reference", sa.String(100)),
        sa.Column("attempt_type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("gateway_status", sa.String(10)),
        sa.Column("error_kind", sa.String(20)),
        sa.Column("error_code", sa.String(20)),
        sa.Column("error_message", sa.Text),
        sa.Column("payment_url", sa.Text),
        sa.Column("raw_response", postgresql.JSONB),
        sa.Column("amount", sa.Numeric(10, 2)),
        sa.Column("currency", sa.String(3)),
        sa.Column("processing_time_ms", sa.Integer),
        sa.Column("ip_address", sa.String(64)),
        sa.Column("user_agent", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_payment_attempt_logs_order_type_status",
        "payment_attempt_logs",
        ["external_order_id", "attempt_type", "status"],
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_index("ix_payment_attempt_logs_order_type_status", table_name="payment_attempt_logs")
    op.drop_table("payment_attempt_logs")
    op.drop_table("sequence_counters")
    op.drop_table("bookings")
    op.drop_table("vehicles")
    op.drop_table("customers")
