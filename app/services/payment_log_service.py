"""Payment attempt ledger service.

Append-only record of every gateway interaction. The ledger is also the
idempotency source: a successful ``verify_payment`` entry for an external
order id means the payment was already applied.
"""

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import GatewayError
from app.models.payment import PaymentAttemptLog


def _clip(value: str | None, column: str) -> str | None:
    """Cut a gateway-supplied string to the width of its ledger column."""
    if value is None:
        return None
    return str(value)[: PaymentAttemptLog.__table__.c[column].type.length]


class PaymentLogService:
    """Service for the immutable payment attempt ledger."""

    async def log_attempt(
        self,
        db: AsyncSession,
        attempt_type: str,
        status: str,
        booking_id: UUID | None,
        external_order_id: str | None = None,
        merchant_reference: str | None = None,
        gateway_status: str | None = None,
        error: GatewayError | None = None,
        payment_url: str | None = None,
        raw_response: dict[str, Any] | None = None,
        amount: Decimal | None = None,
        currency: str | None = None,
        processing_time_ms: int | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> PaymentAttemptLog:
        """Append a ledger entry (immutable once flushed).

        Args:
            db: Database session
            attempt_type: create_order or verify_payment
            status: success or failed
            booking_id: Booking the attempt belongs to
            external_order_id: Gateway order id, when one exists
            error: Gateway failure detail for failed attempts
            raw_response: Gateway payload as received

        Returns:
            Created ledger entry
        """
        entry = PaymentAttemptLog(
            booking_id=booking_id,
            external_order_id=_clip(external_order_id, "external_order_id"),
            merchant_reference=_clip(merchant_reference, "merchant_reference"),
            attempt_type=attempt_type,
            status=status,
            gateway_status=_clip(gateway_status, "gateway_status"),
            error_kind=error.kind.value if error else None,
            error_code=_clip(error.code, "error_code") if error else None,
            error_message=error.detail if error else None,
            payment_url=payment_url,
            raw_response=raw_response,
            amount=amount,
            currency=currency,
            processing_time_ms=processing_time_ms,
            ip_address=_clip(ip_address, "ip_address"),
            user_agent=(user_agent or "")[:500] or None,
        )
        db.add(entry)
        await db.flush()
        return entry

    async def find_successful_verification(
        self, db: AsyncSession, external_order_id: str
    ) -> PaymentAttemptLog | None:
        """Earliest successful verify_payment entry for an external order id."""
        result = await db.execute(
            select(PaymentAttemptLog)
            .where(
                PaymentAttemptLog.external_order_id == external_order_id,
                PaymentAttemptLog.attempt_type == PaymentAttemptLog.ATTEMPT_VERIFY_PAYMENT,
                PaymentAttemptLog.status == PaymentAttemptLog.STATUS_SUCCESS,
            )
            .order_by(PaymentAttemptLog.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_created_order(
        self, db: AsyncSession, booking_id: UUID, external_order_id: str
    ) -> PaymentAttemptLog | None:
        """Successful create_order entry tying an external order to a booking."""
        result = await db.execute(
            select(PaymentAttemptLog)
            .where(
                PaymentAttemptLog.booking_id == booking_id,
                PaymentAttemptLog.external_order_id == external_order_id,
                PaymentAttemptLog.attempt_type == PaymentAttemptLog.ATTEMPT_CREATE_ORDER,
                PaymentAttemptLog.status == PaymentAttemptLog.STATUS_SUCCESS,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def latest_created_order(
        self, db: AsyncSession, booking_id: UUID
    ) -> PaymentAttemptLog | None:
        """Most recent successful create_order entry for a booking."""
        result = await db.execute(
            select(PaymentAttemptLog)
            .where(
                PaymentAttemptLog.booking_id == booking_id,
                PaymentAttemptLog.attempt_type == PaymentAttemptLog.ATTEMPT_CREATE_ORDER,
                PaymentAttemptLog.status == PaymentAttemptLog.STATUS_SUCCESS,
            )
            .order_by(PaymentAttemptLog.created_at.desc(), PaymentAttemptLog.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count_create_attempts(self, db: AsyncSession, booking_id: UUID) -> int:
        """Number of create_order attempts (any outcome) for a booking."""
        result = await db.execute(
            select(func.count(PaymentAttemptLog.id)).where(
                PaymentAttemptLog.booking_id == booking_id,
                PaymentAttemptLog.attempt_type == PaymentAttemptLog.ATTEMPT_CREATE_ORDER,
            )
        )
        return result.scalar_one()

    async def list_for_booking(self, db: AsyncSession, booking_id: UUID) -> list[PaymentAttemptLog]:
        result = await db.execute(
            select(PaymentAttemptLog)
            .where(PaymentAttemptLog.booking_id == booking_id)
            .order_by(PaymentAttemptLog.created_at)
        )
        return list(result.scalars().all())


# Singleton instance
payment_log_service = PaymentLogService()
