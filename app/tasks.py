"""Celery background tasks.

This module contains the background tasks for:
- Payment reconciliation of online bookings left in Pending
- Re-verification of a single gateway order
- Delivery of committed notifications
"""

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from celery import shared_task
from sqlalchemy import select

from app.config import settings
from app.core.exceptions import AppException
from app.database import close_db, get_db_context
from app.domain.booking_state import BookingStatus, PaymentType
from app.domain.payment_state import PaymentStatus
from app.gateways.base import PaymentGateway
from app.models.booking import Booking
from app.services.gateway_service import gateway_service
from app.services.notification_service import notification_service
from app.services.payment_log_service import payment_log_service
from app.services.verification_service import verification_service

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context, releasing loop-bound resources afterwards."""

    async def runner():
        try:
            return await coro
        finally:
            await gateway_service.close()
            await notification_service.close()
            await close_db()

    return asyncio.run(runner())


# ==================== PAYMENT TASKS ====================


@shared_task(bind=True, max_retries=3)
def reconcile_pending_payments(self):
    """Re-verify online bookings stuck in Pending.

    Runs every ``reconciliation_interval_minutes``. Uses the same idempotent
    verification entry point as the browser redirect.
    """
    try:
        summary = run_async(_reconcile_pending_payments())
        return {"status": "success", **summary}
    except Exception as exc:
        self.retry(exc=exc, countdown=300)


@shared_task(bind=True, max_retries=5)
def verify_booking_payment(self, booking_id: str, external_order_id: str):
    """Verify one gateway order (e.g. after a lost browser redirect)."""
    try:
        result = run_async(_verify_booking_payment(UUID(booking_id), external_order_id))
        return {"status": "success", "payment_status": result}
    except AppException as exc:
        logger.error(f"Verification of {external_order_id} for booking {booking_id} rejected: {exc.detail}")
        return {"status": "rejected", "detail": exc.detail}
    except Exception as exc:
        self.retry(exc=exc, countdown=60)


async def find_stale_pending_bookings(
    stale_minutes: int | None = None,
    limit: int | None = None,
) -> list[UUID]:
    """Ids of Online bookings still Pending after ``stale_minutes``."""
    stale_minutes = settings.reconciliation_stale_minutes if stale_minutes is None else stale_minutes
    cutoff = datetime.now(UTC) - timedelta(minutes=stale_minutes)

    async with get_db_context() as db:
        result = await db.execute(
            select(Booking.id)
            .where(
                Booking.payment_type == PaymentType.ONLINE.value,
                Booking.status == BookingStatus.PENDING.value,
                Booking.updated_at <= cutoff,
            )
            .order_by(Booking.created_at)
            .limit(limit or settings.reconciliation_batch_size)
        )
        return list(result.scalars().all())


async def _reconcile_pending_payments(
    stale_minutes: int | None = None,
    limit: int | None = None,
    gateway: PaymentGateway | None = None,
) -> dict[str, int]:
    """Async implementation of payment reconciliation.

    Each booking is verified in its own transaction so one failure does not
    undo the others.
    """
    booking_ids = await find_stale_pending_bookings(stale_minutes, limit)
    summary = {"checked": 0, "paid": 0, "failed": 0, "skipped": 0, "errors": 0}
    gateway = gateway or gateway_service.get_gateway()

    for booking_id in booking_ids:
        try:
            async with get_db_context() as db:
                order = await payment_log_service.latest_created_order(db, booking_id)
                if order is None:
                    summary["skipped"] += 1
                    continue

                summary["checked"] += 1
                result = await verification_service.apply_verification(
                    db, booking_id, order.external_order_id, gateway
                )
                if result.payment_status == PaymentStatus.PAID.value:
                    summary["paid"] += 1
                else:
                    summary["failed"] += 1
        except AppException as e:
            summary["errors"] += 1
            logger.error(f"Reconciliation of booking {booking_id} failed: {e.detail}")

    logger.info(f"Payment reconciliation finished: {summary}")
    return summary


async def _verify_booking_payment(booking_id: UUID, external_order_id: str) -> str:
    async with get_db_context() as db:
        result = await verification_service.apply_verification(
            db, booking_id, external_order_id, gateway_service.get_gateway()
        )
        return result.payment_status


# ==================== EMAIL TASKS ====================


@shared_task(bind=True, max_retries=3)
def send_notification_task(self, to_address: str, template_kind: str, data: dict[str, Any]):
    """Send a committed notification outside the request.

    Queued by ``NotificationService.dispatch_pending`` when
    ``notification_queue_enabled`` is set.
    """
    sent = run_async(notification_service.send(to_address, template_kind, data))
    if not sent:
        self.retry(countdown=60)
    return {"status": "success", "to": to_address, "kind": template_kind}
