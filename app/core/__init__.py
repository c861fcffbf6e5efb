"""Core utilities and security modules."""

from app.core.exceptions import (
    AlreadyProcessedError,
    AppException,
    AuthenticationError,
    ConfigurationError,
    ConflictError,
    GatewayError,
    GatewayErrorKind,
    NotFoundError,
    PaymentError,
    ValidationError,
)
from app.core.security import (
    create_access_token,
    create_refresh_token,
    get_password_hash,
    verify_password,
    verify_token,
)

__all__ = [
    "AlreadyProcessedError",
    "AppException",
    "AuthenticationError",
    "ConfigurationError",
    "ConflictError",
    "GatewayError",
    "GatewayErrorKind",
    "NotFoundError",
    "PaymentError",
    "ValidationError",
    "create_access_token",
    "create_refresh_token",
    "get_password_hash",
    "verify_password",
    "verify_token",
]
