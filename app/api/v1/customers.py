"""Customer registration and account endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.deps import DbSession, get_current_customer
from app.core.security import create_tokens
from app.models.customer import Customer
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
from app.services.customer_service import customer_service, raise_for_resolution

router = APIRouter()


@router.post("/register", response_model=ResolutionResponse, status_code=status.HTTP_201_CREATED)
async def register(
    details: CustomerDetails,
    db: DbSession,
) -> ResolutionResponse:
    """Register or resolve a customer by email.

    Created and Upgraded return 201; ExactMatch and Conflict return 409 with
    the stored details (and the field diff for a conflict).
    """
    resolution = await customer_service.resolve(db, details)
    raise_for_resolution(resolution)

    return ResolutionResponse(
        outcome=resolution.outcome.value,
        customer=CustomerResponse.model_validate(resolution.customer),
    )


@router.post("/find", response_model=CustomerResponse)
async def find_customer(
    request: CustomerFindRequest,
    db: DbSession,
) -> CustomerResponse:
    """Find a customer by email."""
    customer = await customer_service.get_by_email(db, request.email)
    return CustomerResponse.model_validate(customer)


@router.get("/me", response_model=CustomerResponse)
async def get_me(
    current_customer: Annotated[Customer, Depends(get_current_customer)],
) -> CustomerResponse:
    """Get the logged-in customer."""
    return CustomerResponse.model_validate(current_customer)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: UUID,
    data: CustomerUpdate,
    db: DbSession,
) -> CustomerResponse:
    """Overwrite stored details with the submitted ones (conflict resolution)."""
    customer = await customer_service.update_customer(db, customer_id, data)
    return CustomerResponse.model_validate(customer)


@router.post("/set-password", response_model=CustomerResponse)
async def set_password(
    request: SetPasswordRequest,
    db: DbSession,
) -> CustomerResponse:
    """Upgrade a guest account with a password."""
    customer = await customer_service.set_password(db, request.email, request.password)
    return CustomerResponse.model_validate(customer)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: CustomerLogin,
    db: DbSession,
) -> TokenResponse:
    """Login with email and password."""
    customer = await customer_service.authenticate(db, credentials.email, credentials.password)

    tokens = create_tokens(str(customer.id), customer.email)
    return TokenResponse(**tokens, customer=CustomerResponse.model_validate(customer))
