"""Booking lifecycle management.

Creates bookings with their order number and drives status changes from
payment outcomes. All changes run in the caller's transaction: an error
anywhere leaves neither the booking nor the counters changed.
"""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.domain.booking_state import (
    BookingStatus,
    PaymentType,
    assert_booking_transition,
    initial_booking_status,
)
from app.domain.payment_state import (
    PaymentStatus,
    assert_payment_transition,
    initial_payment_status,
)
from app.models.booking import Booking
from app.models.customer import Customer
from app.models.vehicle import Vehicle
from app.schemas.booking import BookingCreate
from app.services.customer_service import customer_service, raise_for_resolution
from app.services.notification_service import notification_service
from app.services.sequence_service import sequence_service

logger = logging.getLogger(__name__)


def assert_valid_booking_input(start_date: datetime, end_date: datetime, total_price: Decimal) -> None:
    """Guard: dates ordered and price non-negative."""
    errors = []
    if end_date <= start_date:
        errors.append({"field": "end_date", "message": "end_date must be after start_date"})
    if total_price < 0:
        errors.append({"field": "total_price", "message": "total_price must not be negative"})
    if errors:
        raise ValidationError("Invalid booking data", errors=errors)


def booking_notification_data(booking: Booking) -> dict[str, Any]:
    """Template data for confirmation emails."""
    return {
        "customer_name": booking.customer.full_name,
        "order_number": booking.order_number,
        "invoice_no": booking.invoice_no,
        "vehicle_name": booking.vehicle.name,
        "start_date": booking.start_date.date().isoformat(),
        "end_date": booking.end_date.date().isoformat(),
        "pickup_time": booking.pickup_time,
        "dropoff_time": booking.dropoff_time,
        "pickup_location": booking.pickup_location,
        "dropoff_location": booking.dropoff_location,
        "total_price": f"{booking.total_price:.2f}",
        "currency": booking.currency,
        "payment_status": booking.payment_status,
        "extras": booking.extras or [],
        "action_url": f"{settings.public_base_url}/booking-confirmation?orderNumber={booking.order_number}",
    }


class BookingService:
    """Booking Lifecycle Manager."""

    async def get_bookable_vehicle(self, db: AsyncSession, vehicle_id: UUID) -> Vehicle:
        """Catalog lookup: the vehicle must exist and be visible."""
        vehicle = await db.get(Vehicle, vehicle_id)
        if not vehicle or not vehicle.visible:
            raise NotFoundError("Vehicle", str(vehicle_id))
        return vehicle

    async def _resolve_customer(self, db: AsyncSession, data: BookingCreate) -> Customer:
        if data.customer_id is not None:
            return await customer_service.get_customer(db, data.customer_id)

        resolution = await customer_service.resolve(db, data.customer)
        # Only a new or just-upgraded identity may book from details alone;
        # an existing one must be referenced by id (or via login)
        raise_for_resolution(resolution)
        return resolution.customer

    async def create_booking(self, db: AsyncSession, data: BookingCreate) -> Booking:
        """Create a booking and assign its order number.

        OnArrival bookings are confirmed immediately; Online bookings wait in
        Pending for payment verification.

        Raises:
            ValidationError: Bad dates or price
            NotFoundError: Customer or vehicle missing, or vehicle not visible
            ConflictError: Submitted details clash with or exactly match a stored customer
        """
        assert_valid_booking_input(data.start_date, data.end_date, data.total_price)

        vehicle = await self.get_bookable_vehicle(db, data.vehicle_id)
        customer = await self._resolve_customer(db, data)

        order_number = await sequence_service.next_order_number(db)
        payment_type = PaymentType(data.payment_type)
        status = initial_booking_status(payment_type)

        booking = Booking(
            order_number=order_number,
            customer=customer,
            vehicle=vehicle,
            start_date=data.start_date,
            end_date=data.end_date,
            pickup_location=data.pickup_location,
            dropoff_location=data.dropoff_location,
            pickup_time=data.pickup_time,
            dropoff_time=data.dropoff_time,
            total_price=data.total_price,
            currency=settings.currency,
            status=status.value,
            payment_status=initial_payment_status(payment_type).value,
            payment_type=payment_type.value,
            extras=[extra.model_dump(mode="json") for extra in data.extras],
            flight_info=data.flight_info,
            comments=data.comments,
            promotion_code=data.promotion_code,
            confirmed_at=datetime.now(UTC) if status == BookingStatus.CONFIRMED else None,
        )
        db.add(booking)
        await db.flush()
        await db.refresh(booking)

        logger.info(
            f"Booking {booking.order_number} created: {payment_type.value}, "
            f"status={booking.status}, customer={customer.email}"
        )

        if payment_type == PaymentType.ON_ARRIVAL:
            self.notify_confirmation(db, booking)

        return booking

    async def get_booking(self, db: AsyncSession, booking_id: UUID) -> Booking:
        booking = await db.get(Booking, booking_id)
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get_booking_for_update(self, db: AsyncSession, booking_id: UUID) -> Booking:
        """Load a booking holding its row lock until the transaction ends."""
        result = await db.execute(
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def lookup(self, db: AsyncSession, invoice_no: str, email: str) -> Booking:
        """Customer self-service lookup; both invoice number and email must match."""
        result = await db.execute(
            select(Booking)
            .join(Customer, Booking.customer_id == Customer.id)
            .where(Booking.invoice_no == invoice_no.strip().upper(), Customer.email == email)
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking")
        return booking

    # ==================== PAYMENT OUTCOMES ====================

    async def mark_paid(self, db: AsyncSession, booking: Booking, transaction_id: str) -> bool:
        """Confirm a paid booking and issue its invoice number.

        Returns False (no-op) when the booking is already Confirmed.
        """
        if booking.status == BookingStatus.CONFIRMED.value:
            logger.info(f"Booking {booking.order_number} already confirmed; paid outcome ignored")
            return False

        assert_booking_transition(booking.status, BookingStatus.CONFIRMED.value)
        assert_payment_transition(booking.payment_status, PaymentStatus.PAID.value)

        now = datetime.now(UTC)
        booking.invoice_no = await sequence_service.next_invoice_number(db)
        booking.status = BookingStatus.CONFIRMED.value
        booking.payment_status = PaymentStatus.PAID.value
        booking.transaction_id = transaction_id
        booking.paid_at = now
        booking.confirmed_at = now
        await db.flush()
        await db.refresh(booking)

        logger.info(f"Booking {booking.order_number} paid: invoice {booking.invoice_no}")
        return True

    async def mark_failed(self, db: AsyncSession, booking: Booking) -> bool:
        """Record a failed payment.

        Returns False (no-op) when the booking is Confirmed or already Failed.
        """
        if booking.status != BookingStatus.PENDING.value:
            logger.info(
                f"Booking {booking.order_number} is {booking.status}; failed outcome ignored"
            )
            return False

        assert_payment_transition(booking.payment_status, PaymentStatus.FAILED.value)
        booking.status = BookingStatus.FAILED.value
        booking.payment_status = PaymentStatus.FAILED.value
        await db.flush()
        await db.refresh(booking)

        logger.info(f"Booking {booking.order_number} payment failed")
        return True

    async def reopen_for_payment(self, db: AsyncSession, booking: Booking) -> None:
        """Move a Failed booking back to Pending for a new payment attempt."""
        if booking.status != BookingStatus.FAILED.value:
            return

        assert_booking_transition(booking.status, BookingStatus.PENDING.value)
        assert_payment_transition(booking.payment_status, PaymentStatus.PENDING.value)
        booking.status = BookingStatus.PENDING.value
        booking.payment_status = PaymentStatus.PENDING.value
        await db.flush()
        await db.refresh(booking)
        logger.info(f"Booking {booking.order_number} reopened for payment retry")

    # ==================== NOTIFICATIONS ====================

    def notify_confirmation(self, db: AsyncSession, booking: Booking) -> None:
        """Queue the confirmation email matching the booking's payment state."""
        data = booking_notification_data(booking)
        if booking.payment_status == PaymentStatus.PAID.value:
            notification_service.notify_payment_confirmed(db, booking.customer.email, data)
        else:
            notification_service.notify_booking_confirmed(db, booking.customer.email, data)


# Singleton instance
booking_service = BookingService()
