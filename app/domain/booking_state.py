"""Booking state machine."""

from enum import Enum

from app.core.exceptions import ValidationError


class BookingStatus(str, Enum):
    """Process state of a booking."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    FAILED = "Failed"


class PaymentType(str, Enum):
    """How the customer settles the booking."""

    ONLINE = "Online"
    ON_ARRIVAL = "OnArrival"


# Failed -> Pending is a new gateway order for the same booking.
# Failed -> Confirmed is a late capture the gateway confirms on re-verification.
BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.FAILED},
    BookingStatus.FAILED: {BookingStatus.PENDING, BookingStatus.CONFIRMED},
    BookingStatus.CONFIRMED: set(),
}


def initial_booking_status(payment_type: PaymentType) -> BookingStatus:
    """Status a freshly created booking starts in."""
    if payment_type == PaymentType.ON_ARRIVAL:
        return BookingStatus.CONFIRMED
    return BookingStatus.PENDING


def can_transition_booking(current: str, target: str) -> bool:
    allowed = BOOKING_TRANSITIONS.get(BookingStatus(current), set())
    return BookingStatus(target) in allowed


def assert_booking_transition(current: str, target: str) -> None:
    if not can_transition_booking(current, target):
        raise ValidationError(
            f"Invalid booking transition: {current} → {target}"
        )
