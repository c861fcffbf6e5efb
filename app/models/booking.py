"""Booking database model."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, JSONVariant

if TYPE_CHECKING:
    from app.models.customer import Customer
    from app.models.payment import PaymentAttemptLog
    from app.models.vehicle import Vehicle


class Booking(Base):
    """Booking aggregate root."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    order_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )  # K000001, assigned at creation
    invoice_no: Mapped[str | None] = mapped_column(
        String(20), unique=True, index=True
    )  # P000001, assigned on confirmed payment only
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False, index=True
    )
    vehicle_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("vehicles.id"), nullable=False, index=True
    )

    # Rental period
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    pickup_location: Mapped[str | None] = mapped_column(String(200))
    dropoff_location: Mapped[str | None] = mapped_column(String(200))
    pickup_time: Mapped[str | None] = mapped_column(String(10))
    dropoff_time: Mapped[str | None] = mapped_column(String(10))

    # Pricing (currency units, two decimals)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="EUR")

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )  # Pending, Confirmed, Failed
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # Pending, PayOnArrival, Paid, Failed
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False)  # Online, OnArrival
    transaction_id: Mapped[str | None] = mapped_column(String(100))  # gateway order id

    # Extras and trip details
    extras: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONVariant)
    flight_info: Mapped[dict[str, Any] | None] = mapped_column(JSONVariant)
    comments: Mapped[str | None] = mapped_column(Text)
    promotion_code: Mapped[str | None] = mapped_column(String(50))

    # Timestamps
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    customer: Mapped["Customer"] = relationship(
        "Customer", back_populates="bookings", lazy="selectin"
    )
    vehicle: Mapped["Vehicle"] = relationship("Vehicle", lazy="selectin")
    payment_attempts: Mapped[list["PaymentAttemptLog"]] = relationship(
        "PaymentAttemptLog", back_populates="booking"
    )

    __table_args__ = (
        CheckConstraint(
            "invoice_no IS NULL OR payment_status = 'Paid'",
            name="check_booking_invoice_requires_paid",
        ),
        CheckConstraint("total_price >= 0", name="check_booking_total_price_non_negative"),
        CheckConstraint("end_date > start_date", name="check_booking_dates_ordered"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, order={self.order_number}, status={self.status}, payment={self.payment_status})>"
