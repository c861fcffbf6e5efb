"""API dependencies for authentication and common operations."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError
from app.core.security import verify_token
from app.database import get_db
from app.gateways.base import PaymentGateway
from app.models.customer import Customer
from app.services.gateway_service import get_payment_gateway

# Security scheme
security = HTTPBearer()

DbSession = Annotated[AsyncSession, Depends(get_db)]
Gateway = Annotated[PaymentGateway, Depends(get_payment_gateway)]


async def get_current_customer(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: DbSession,
) -> Customer:
    """Get the current authenticated customer from JWT token."""
    payload = verify_token(credentials.credentials, token_type="access")
    customer_id = payload.get("sub")
    if not customer_id:
        raise AuthenticationError("Invalid token payload")

    try:
        customer = await db.get(Customer, UUID(customer_id))
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    if not customer:
        raise AuthenticationError("Customer not found")
    return customer


def get_client_context(request: Request) -> dict[str, str | None]:
    """Client IP and user agent recorded with payment attempts."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip_address = forwarded.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None
    return {
        "ip_address": ip_address,
        "user_agent": request.headers.get("User-Agent"),
    }


ClientContext = Annotated[dict[str, str | None], Depends(get_client_context)]
