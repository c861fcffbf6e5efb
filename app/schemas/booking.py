"""Booking-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from app.domain.booking_state import PaymentType
from app.schemas.customer import CustomerDetails


class BookingExtra(BaseModel):
    """Optional add-on (child seat, extra driver, ...)."""

    name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(default=1, ge=1, le=20)
    price: Decimal | None = Field(None, ge=0)


class BookingCreate(BaseModel):
    """Schema for creating a booking.

    Exactly one of ``customer_id`` or ``customer`` must be given.
    """

    customer_id: UUID | None = None
    customer: CustomerDetails | None = None
    vehicle_id: UUID
    # Offsets are required so the two dates always compare
    start_date: AwareDatetime
    end_date: AwareDatetime
    total_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    payment_type: PaymentType
    extras: list[BookingExtra] = Field(default_factory=list)

    pickup_location: str | None = Field(None, max_length=200)
    dropoff_location: str | None = Field(None, max_length=200)
    pickup_time: str | None = Field(None, pattern=r"^\d{2}:\d{2}$")
    dropoff_time: str | None = Field(None, pattern=r"^\d{2}:\d{2}$")
    flight_info: dict[str, Any] | None = None
    comments: str | None = Field(None, max_length=1000)
    promotion_code: str | None = Field(None, max_length=50)

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v: datetime, info) -> datetime:
        start_date = info.data.get("start_date")
        if start_date and v <= start_date:
            raise ValueError("end_date must be after start_date")
        return v

    @model_validator(mode="after")
    def validate_customer_reference(self) -> "BookingCreate":
        if (self.customer_id is None) == (self.customer is None):
            raise ValueError("Provide either customer_id or customer details")
        return self


class BookingLookupRequest(BaseModel):
    """Customer self-service lookup by invoice number."""

    invoice_no: str = Field(..., min_length=1, max_length=20)
    email: EmailStr


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    invoice_no: str | None
    customer_id: UUID
    vehicle_id: UUID

    # Dates
    start_date: datetime
    end_date: datetime
    pickup_location: str | None
    dropoff_location: str | None
    pickup_time: str | None
    dropoff_time: str | None

    # Pricing
    total_price: Decimal
    currency: str

    # Status
    status: str
    payment_status: str
    payment_type: str
    transaction_id: str | None

    extras: list[dict[str, Any]] | None
    comments: str | None
    confirmed_at: datetime | None
    paid_at: datetime | None
    created_at: datetime | None = None
