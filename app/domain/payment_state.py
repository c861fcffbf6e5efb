"""Payment state machine."""

from enum import Enum

from app.core.exceptions import ValidationError
from app.domain.booking_state import PaymentType


class PaymentStatus(str, Enum):
    """Payment state of a booking."""

    PENDING = "Pending"
    PAY_ON_ARRIVAL = "PayOnArrival"
    PAID = "Paid"
    FAILED = "Failed"


class GatewayOrderStatus(str, Enum):
    """Normalized order status reported by the card gateway."""

    PAID = "Paid"
    NOT_PAID = "NotPaid"


PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING, PaymentStatus.PAID},
    PaymentStatus.PAY_ON_ARRIVAL: set(),
    PaymentStatus.PAID: set(),
}

# orderStatus values: 0 registered/not paid, 1 pre-authorized, 2 deposited
_PAID_GATEWAY_CODES = {"1", "2"}


def initial_payment_status(payment_type: PaymentType) -> PaymentStatus:
    """Payment status a freshly created booking starts in."""
    if payment_type == PaymentType.ON_ARRIVAL:
        return PaymentStatus.PAY_ON_ARRIVAL
    return PaymentStatus.PENDING


def map_gateway_status(raw_status_code: str | int | None) -> GatewayOrderStatus:
    """Map the gateway's raw orderStatus to paid / not paid.

    Pre-authorized (1) counts as paid; 0, missing or unknown codes do not.
    """
    if raw_status_code is None:
        return GatewayOrderStatus.NOT_PAID
    code = str(raw_status_code).strip()
    if code in _PAID_GATEWAY_CODES:
        return GatewayOrderStatus.PAID
    return GatewayOrderStatus.NOT_PAID


def assert_payment_transition(current: str, target: str) -> None:
    allowed = PAYMENT_TRANSITIONS.get(PaymentStatus(current), set())
    if PaymentStatus(target) not in allowed:
        raise ValidationError(
            f"Invalid payment transition: {current} → {target}"
        )
