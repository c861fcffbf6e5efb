"""Append-only enforcement for the payment attempt ledger using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from app.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(ValidationError):
    """Raised when attempting to modify an append-only record."""

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "Payment attempt records are append-only."
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    """Log immutability violation for audit purposes."""
    logger.error(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def register_immutability_enforcement() -> None:
    """Register listeners that reject UPDATE and DELETE on PaymentAttemptLog.

    Safe to call more than once; listeners are attached a single time.
    """
    global _registered
    if _registered:
        return

    from app.models.payment import PaymentAttemptLog

    @event.listens_for(PaymentAttemptLog, "before_update")
    def prevent_attempt_update(mapper, connection, target):
        _log_immutability_violation("PaymentAttemptLog", "UPDATE", str(target.id))
        raise ImmutabilityViolationError("PaymentAttemptLog", "UPDATE", str(target.id))

    @event.listens_for(PaymentAttemptLog, "before_delete")
    def prevent_attempt_delete(mapper, connection, target):
        _log_immutability_violation("PaymentAttemptLog", "DELETE", str(target.id))
        raise ImmutabilityViolationError("PaymentAttemptLog", "DELETE", str(target.id))

    _registered = True
    logger.info("Immutability enforcement registered for payment attempt log")
