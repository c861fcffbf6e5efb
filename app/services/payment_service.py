"""Online payment orchestration: gateway order creation for a booking."""

import logging
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import AlreadyProcessedError, PaymentError, ValidationError
from app.domain.booking_state import PaymentType
from app.domain.payment_state import PaymentStatus
from app.gateways.base import CustomerDetails, PaymentGateway
from app.models.booking import Booking
from app.models.payment import PaymentAttemptLog
from app.services.booking_service import booking_service
from app.services.payment_log_service import payment_log_service
from app.utils.booking_number import generate_merchant_reference

logger = logging.getLogger(__name__)


def to_minor_units(amount: Decimal) -> int:
    """Currency units to cents, rounding half up (150.005 -> 15001)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def return_urls(booking: Booking) -> tuple[str, str]:
    """Browser redirect targets after the hosted payment page."""
    base = settings.public_base_url.rstrip("/")
    return (
        f"{base}/payment/success?bookingId={booking.id}",
        f"{base}/payment/failure?bookingId={booking.id}",
    )


@dataclass
class StartedPayment:
    booking: Booking
    external_order_id: str
    payment_url: str
    merchant_reference: str


class PaymentService:
    """Starts online payments for bookings."""

    async def start_online_payment(
        self,
        db: AsyncSession,
        booking_id: UUID,
        gateway: PaymentGateway,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> StartedPayment:
        """Register a gateway order for an Online booking.

        Every attempt is written to the payment ledger, including failures.

        Raises:
            NotFoundError: Booking not found
            ValidationError: Booking is not an online payment
            AlreadyProcessedError: Booking already paid
            PaymentError: Gateway rejected or could not be reached
        """
        booking = await booking_service.get_booking_for_update(db, booking_id)

        if booking.payment_type != PaymentType.ONLINE.value:
            raise ValidationError(
                f"Booking {booking.order_number} is not an online payment booking"
            )
        if booking.payment_status == PaymentStatus.PAID.value:
            raise AlreadyProcessedError(f"Booking {booking.order_number} is already paid")

        attempt = await payment_log_service.count_create_attempts(db, booking.id) + 1
        reference = generate_merchant_reference(booking.order_number, attempt)
        return_url, fail_url = return_urls(booking)
        customer = booking.customer

        started = time.monotonic()
        result = await gateway.create_order(
            amount=to_minor_units(booking.total_price),
            currency=booking.currency,
            reference=reference,
            description=f"Car rental {booking.vehicle.name} - {booking.order_number}",
            return_url=return_url,
            fail_url=fail_url,
            customer=CustomerDetails(
                email=customer.email,
                phone=customer.phone,
                first_name=customer.first_name,
                last_name=customer.last_name,
            ),
            extra_params={"bookingId": str(booking.id), "orderNumber": booking.order_number},
        )
        elapsed_ms = int((time.monotonic() - started) * 1000)

        await payment_log_service.log_attempt(
            db,
            attempt_type=PaymentAttemptLog.ATTEMPT_CREATE_ORDER,
            status=PaymentAttemptLog.STATUS_SUCCESS if result.success else PaymentAttemptLog.STATUS_FAILED,
            booking_id=booking.id,
            external_order_id=result.external_order_id,
            merchant_reference=reference,
            error=result.error,
            payment_url=result.redirect_url,
            raw_response=result.raw_response,
            amount=booking.total_price,
            currency=booking.currency,
            processing_time_ms=elapsed_ms,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        if not result.success:
            logger.error(
                f"Payment order for booking {booking.order_number} ({reference}) failed: {result.error}"
            )
            # Failed attempts stay in the ledger even though the request errors
            await db.commit()
            raise PaymentError()

        await booking_service.reopen_for_payment(db, booking)
        logger.info(
            f"Payment order {result.external_order_id} created for booking {booking.order_number} ({reference})"
        )
        return StartedPayment(
            booking=booking,
            external_order_id=result.external_order_id,
            payment_url=result.redirect_url,
            merchant_reference=reference,
        )


# Singleton instance
payment_service = PaymentService()
