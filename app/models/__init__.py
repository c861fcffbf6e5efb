"""Database models."""

from app.models.booking import Booking
from app.models.customer import Customer
from app.models.payment import PaymentAttemptLog
from app.models.sequence import SequenceCounter
from app.models.vehicle import Vehicle

__all__ = [
    # Customer
    "Customer",
    # Catalog reference
    "Vehicle",
    # Booking
    "Booking",
    # Payment
    "PaymentAttemptLog",
    # Configuration
    "SequenceCounter",
]

from app.core.immutability import register_immutability_enforcement  # noqa: E402

register_immutability_enforcement()
