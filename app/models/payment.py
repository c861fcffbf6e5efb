"""Payment attempt ledger model."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, JSONVariant

if TYPE_CHECKING:
    from app.models.booking import Booking


class PaymentAttemptLog(Base):
    """Append-only record of every gateway interaction.

    Doubles as the idempotency ledger: a ``verify_payment`` row with status
    ``success`` for an external order id means the payment was applied.
    """

    __tablename__ = "payment_attempt_logs"

    ATTEMPT_CREATE_ORDER = "create_order"
    ATTEMPT_VERIFY_PAYMENT = "verify_payment"
    STATUS_SUCCESS = "success"
    STATUS_FAILED = "failed"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("bookings.id"), index=True
    )
    external_order_id: Mapped[str | None] = mapped_column(String(100), index=True)
    merchant_reference: Mapped[str | None] = mapped_column(String(100))

    attempt_type: Mapped[str] = mapped_column(String(20), nullable=False)  # create_order, verify_payment
    status: Mapped[str] = mapped_column(String(10), nullable=False)  # success, failed

    # Gateway outcome
    gateway_status: Mapped[str | None] = mapped_column(String(10))  # raw orderStatus
    error_kind: Mapped[str | None] = mapped_column(String(20))  # transport, format, business, configuration
    error_code: Mapped[str | None] = mapped_column(String(20))
    error_message: Mapped[str | None] = mapped_column(Text)
    payment_url: Mapped[str | None] = mapped_column(Text)
    raw_response: Mapped[dict[str, Any] | None] = mapped_column(JSONVariant)

    # Amount (currency units)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    currency: Mapped[str | None] = mapped_column(String(3))

    # Request context
    processing_time_ms: Mapped[int | None] = mapped_column(Integer)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), server_default=func.now()
    )

    # Relationships
    booking: Mapped["Booking | None"] = relationship("Booking", back_populates="payment_attempts")

    __table_args__ = (
        Index(
            "ix_payment_attempt_logs_order_type_status",
            "external_order_id",
            "attempt_type",
            "status",
        ),
    )
