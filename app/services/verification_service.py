"""Idempotent payment verification.

Applies a gateway order's outcome to its booking at most once, however many
times verification is requested (browser redirect, retried redirect,
reconciliation job). The booking row lock taken first serializes concurrent
calls for the same booking; the ledger check and the booking update then run
in that same transaction.
"""

import logging
import time
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import GatewayError, GatewayErrorKind, ValidationError
from app.domain.payment_state import GatewayOrderStatus, PaymentStatus
from app.gateways.base import PaymentGateway
from app.models.booking import Booking
from app.models.payment import PaymentAttemptLog
from app.schemas.payment import VerificationResult
from app.services.booking_service import booking_service
from app.services.payment_log_service import payment_log_service
from app.services.payment_service import to_minor_units

logger = logging.getLogger(__name__)


def _result(
    booking: Booking,
    external_order_id: str,
    already_processed: bool = False,
    gateway_status: str | None = None,
    error: GatewayError | None = None,
) -> VerificationResult:
    return VerificationResult(
        booking_id=booking.id,
        external_order_id=external_order_id,
        status=booking.status,
        payment_status=booking.payment_status,
        order_number=booking.order_number,
        invoice_no=booking.invoice_no,
        transaction_id=booking.transaction_id,
        already_processed=already_processed,
        gateway_status=gateway_status,
        error_kind=error.kind.value if error else None,
    )


class VerificationService:
    """Verification Idempotency Guard."""

    async def apply_verification(
        self,
        db: AsyncSession,
        booking_id: UUID,
        external_order_id: str,
        gateway: PaymentGateway,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> VerificationResult:
        """Verify ``external_order_id`` with the gateway and apply the outcome once.

        Raises:
            NotFoundError: Booking not found
            ValidationError: The external order was never created for this booking
        """
        booking = await booking_service.get_booking_for_update(db, booking_id)

        created = await payment_log_service.find_created_order(db, booking.id, external_order_id)
        if created is None:
            logger.warning(
                f"Verification for booking {booking.order_number} with unknown order {external_order_id}"
            )
            raise ValidationError("Payment order does not belong to this booking")

        prior = await payment_log_service.find_successful_verification(db, external_order_id)
        if prior is not None:
            logger.info(f"Order {external_order_id} already verified; returning recorded outcome")
            return _result(booking, external_order_id, already_processed=True, gateway_status=prior.gateway_status)

        if booking.payment_status == PaymentStatus.PAID.value:
            logger.warning(
                f"Booking {booking.order_number} is Paid but order {external_order_id} has no "
                "successful verification entry"
            )
            return _result(booking, external_order_id, already_processed=True)

        started = time.monotonic()
        verification = await gateway.verify_order(external_order_id)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        error = verification.error
        paid = verification.order_status == GatewayOrderStatus.PAID
        expected_amount = to_minor_units(booking.total_price)
        if paid and verification.amount is not None and verification.amount != expected_amount:
            error = GatewayError(
                GatewayErrorKind.BUSINESS,
                f"Paid amount {verification.amount} does not match booking total {expected_amount}",
                raw=verification.raw_response,
            )
            paid = False
        if not paid and error is None:
            error = GatewayError(
                GatewayErrorKind.BUSINESS,
                f"Payment not completed (order status {verification.raw_status_code})",
                code=verification.raw_status_code,
            )

        if paid:
            await booking_service.mark_paid(db, booking, transaction_id=external_order_id)
        else:
            await booking_service.mark_failed(db, booking)

        # Ledger entry follows the booking mutation so it reflects what was applied
        await payment_log_service.log_attempt(
            db,
            attempt_type=PaymentAttemptLog.ATTEMPT_VERIFY_PAYMENT,
            status=PaymentAttemptLog.STATUS_SUCCESS if paid else PaymentAttemptLog.STATUS_FAILED,
            booking_id=booking.id,
            external_order_id=external_order_id,
            merchant_reference=created.merchant_reference,
            gateway_status=verification.raw_status_code,
            error=None if paid else error,
            raw_response=verification.raw_response,
            amount=booking.total_price,
            currency=booking.currency,
            processing_time_ms=elapsed_ms,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        if paid:
            booking_service.notify_confirmation(db, booking)
        else:
            logger.warning(
                f"Payment verification failed for booking {booking.order_number}, "
                f"order {external_order_id}: {error}"
            )

        return _result(
            booking,
            external_order_id,
            gateway_status=verification.raw_status_code,
            error=None if paid else error,
        )


# Singleton instance
verification_service = VerificationService()
