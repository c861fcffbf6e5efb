"""Payment-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CreateOrderRequest(BaseModel):
    """Schema for starting an online payment."""

    booking_id: UUID


class CreateOrderResponse(BaseModel):
    """Hosted payment page for the new gateway order."""

    booking_id: UUID
    external_order_id: str
    payment_url: str


class VerifyPaymentRequest(BaseModel):
    """Schema for verifying a gateway order against a booking."""

    booking_id: UUID
    external_order_id: str = Field(..., min_length=1, max_length=100)


class VerificationResult(BaseModel):
    """Applied payment/booking state after verification.

    ``already_processed`` is True when the call short-circuited on a prior
    successful verification.
    """

    booking_id: UUID
    external_order_id: str
    status: str
    payment_status: str
    order_number: str
    invoice_no: str | None = None
    transaction_id: str | None = None
    already_processed: bool = False
    gateway_status: str | None = None
    error_kind: str | None = None


class PaymentAttemptResponse(BaseModel):
    """Schema for a payment ledger entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID | None
    external_order_id: str | None
    merchant_reference: str | None
    attempt_type: str
    status: str
    gateway_status: str | None
    error_kind: str | None
    error_message: str | None
    amount: Decimal | None
    currency: str | None
    ip_address: str | None = None
    created_at: datetime | None
