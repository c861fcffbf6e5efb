"""Pydantic schemas for API validation."""

from app.schemas.booking import (
    BookingCreate,
    BookingExtra,
    BookingLookupRequest,
    BookingResponse,
)
from app.schemas.customer import (
    CustomerDetails,
    CustomerFindRequest,
    CustomerLogin,
    CustomerResponse,
    CustomerUpdate,
    ResolutionResponse,
    SetPasswordRequest,
    TokenResponse,
)
from app.schemas.payment import (
    CreateOrderRequest,
    CreateOrderResponse,
    PaymentAttemptResponse,
    VerificationResult,
    VerifyPaymentRequest,
)

__all__ = [
    # Booking
    "BookingCreate",
    "BookingExtra",
    "BookingLookupRequest",
    "BookingResponse",
    # Customer
    "CustomerDetails",
    "CustomerFindRequest",
    "CustomerLogin",
    "CustomerResponse",
    "CustomerUpdate",
    "ResolutionResponse",
    "SetPasswordRequest",
    "TokenResponse",
    # Payment
    "CreateOrderRequest",
    "CreateOrderResponse",
    "PaymentAttemptResponse",
    "VerificationResult",
    "VerifyPaymentRequest",
]
