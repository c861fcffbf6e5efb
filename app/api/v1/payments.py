"""Payment endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query

from app.api.deps import ClientContext, DbSession, Gateway
from app.schemas.payment import (
    CreateOrderRequest,
    CreateOrderResponse,
    PaymentAttemptResponse,
    VerificationResult,
    VerifyPaymentRequest,
)
from app.services.booking_service import booking_service
from app.services.payment_log_service import payment_log_service
from app.services.payment_service import payment_service
from app.services.verification_service import verification_service

router = APIRouter()


@router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(
    request: CreateOrderRequest,
    db: DbSession,
    gateway: Gateway,
    client: ClientContext,
) -> CreateOrderResponse:
    """Register a gateway order for an Online booking and return the payment page URL."""
    started = await payment_service.start_online_payment(
        db,
        request.booking_id,
        gateway,
        ip_address=client["ip_address"],
        user_agent=client["user_agent"],
    )
    return CreateOrderResponse(
        booking_id=started.booking.id,
        external_order_id=started.external_order_id,
        payment_url=started.payment_url,
    )


@router.post("/verify", response_model=VerificationResult)
async def verify_payment(
    request: VerifyPaymentRequest,
    db: DbSession,
    gateway: Gateway,
    client: ClientContext,
) -> VerificationResult:
    """Verify a gateway order and apply it to the booking. Safe to repeat."""
    return await verification_service.apply_verification(
        db,
        request.booking_id,
        request.external_order_id,
        gateway,
        ip_address=client["ip_address"],
        user_agent=client["user_agent"],
    )


@router.get("/return", response_model=VerificationResult)
async def payment_return(
    db: DbSession,
    gateway: Gateway,
    client: ClientContext,
    order_id: str = Query(..., alias="orderId", min_length=1, max_length=100),
    booking_id: UUID = Query(..., alias="bookingId"),
) -> VerificationResult:
    """Gateway browser redirect target; same idempotent verification as /verify."""
    return await verification_service.apply_verification(
        db,
        booking_id,
        order_id,
        gateway,
        ip_address=client["ip_address"],
        user_agent=client["user_agent"],
    )


@router.get("/bookings/{booking_id}/attempts", response_model=list[PaymentAttemptResponse])
async def list_payment_attempts(
    booking_id: UUID,
    db: DbSession,
) -> list[PaymentAttemptResponse]:
    """Payment ledger entries of a booking, oldest first."""
    await booking_service.get_booking(db, booking_id)
    entries = await payment_log_service.list_for_booking(db, booking_id)
    return [PaymentAttemptResponse.model_validate(entry) for entry in entries]
