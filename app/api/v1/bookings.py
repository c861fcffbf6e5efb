"""Booking endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import DbSession
from app.schemas.booking import BookingCreate, BookingLookupRequest, BookingResponse
from app.services.booking_service import booking_service

router = APIRouter()


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    db: DbSession,
) -> BookingResponse:
    """Create a booking.

    Accepts either an existing customer id or customer details. OnArrival
    bookings come back Confirmed; Online bookings come back Pending and are
    paid through /payments/create-order.
    """
    booking = await booking_service.create_booking(db, booking_data)
    return BookingResponse.model_validate(booking)


@router.post("/lookup", response_model=BookingResponse)
async def lookup_booking(
    request: BookingLookupRequest,
    db: DbSession,
) -> BookingResponse:
    """Find a booking by invoice number and customer email."""
    booking = await booking_service.lookup(db, request.invoice_no, request.email)
    return BookingResponse.model_validate(booking)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    db: DbSession,
) -> BookingResponse:
    """Get booking details."""
    booking = await booking_service.get_booking(db, booking_id)
    return BookingResponse.model_validate(booking)
