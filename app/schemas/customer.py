"""Customer-related Pydantic schemas."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

MIN_PASSWORD_LENGTH = 6


def _optional_password(v: str | None) -> str | None:
    if v is None or v == "":
        return None
    if len(v) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return v


class CustomerDetails(BaseModel):
    """Contact details submitted at registration or checkout.

    An empty or missing password means a guest customer.
    """

    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=30)
    date_of_birth: date | None = None
    address: str | None = Field(None, max_length=500)
    password: str | None = Field(None, max_length=128)

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field is required")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str | None) -> str | None:
        return _optional_password(v)


class CustomerUpdate(BaseModel):
    """Schema for the accept-and-update conflict resolution. Only set fields change."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = Field(None, min_length=1, max_length=30)
    date_of_birth: date | None = None
    address: str | None = Field(None, max_length=500)


class CustomerFindRequest(BaseModel):
    email: EmailStr


class SetPasswordRequest(BaseModel):
    """Schema for upgrading a guest account."""

    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)


class CustomerLogin(BaseModel):
    """Schema for customer login."""

    email: EmailStr
    password: str


class CustomerResponse(BaseModel):
    """Schema for customer response. Never carries the credential."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    phone: str
    date_of_birth: date | None
    address: str | None
    verified: bool
    has_password: bool
    created_at: datetime | None = None


class ResolutionResponse(BaseModel):
    """Outcome of resolving submitted customer details."""

    outcome: str
    customer: CustomerResponse
    conflicts: list[dict[str, Any]] = []


class TokenResponse(BaseModel):
    """Schema for authentication tokens."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    customer: CustomerResponse
