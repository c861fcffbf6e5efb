"""Custom application exceptions."""

from enum import Enum
from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @property
    def extra(self) -> dict[str, Any]:
        """Structured fields rendered next to ``detail`` in the response body."""
        return {}


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)

    @property
    def extra(self) -> dict[str, Any]:
        return {"errors": self.errors} if self.errors else {}


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed", error_type: str | None = None) -> None:
        self.error_type = error_type
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @property
    def extra(self) -> dict[str, Any]:
        return {"type": self.error_type} if self.error_type else {}


class ConflictError(AppException):
    """Submitted customer details clash with an existing record.

    Not fatal: the caller decides between updating the stored record,
    using another email address, or logging in to the existing account.
    """

    DATA_CONFLICT = "DATA_CONFLICT"
    EXACT_MATCH = "EXACT_MATCH"
    CREDENTIAL_EXISTS = "CREDENTIAL_EXISTS"

    def __init__(
        self,
        detail: str = "Email already exists with different information",
        conflict_type: str = DATA_CONFLICT,
        conflicts: list[dict[str, Any]] | None = None,
        existing_customer: dict[str, Any] | None = None,
    ) -> None:
        self.conflict_type = conflict_type
        self.conflicts = conflicts or []
        self.existing_customer = existing_customer
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

    @property
    def extra(self) -> dict[str, Any]:
        body: dict[str, Any] = {"type": self.conflict_type, "conflicts": self.conflicts}
        if self.existing_customer is not None:
            body["existing_customer"] = self.existing_customer
        return body


class AlreadyProcessedError(AppException):
    """Booking is already paid; a second payment attempt is rejected."""

    def __init__(self, detail: str = "Booking is already paid") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ConfigurationError(AppException):
    """Required system configuration (counter row, credentials) is missing.

    The public detail stays opaque; the real cause goes to the log.
    """

    def __init__(self, reason: str = "System configuration error") -> None:
        self.reason = reason
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="System configuration error. Please contact support.",
        )


class PaymentError(AppException):
    """Payment processing error surfaced to the client without gateway detail."""

    def __init__(self, detail: str = "Payment could not be processed. Please try again or contact support.") -> None:
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)


class GatewayErrorKind(str, Enum):
    """Failure shapes of the card gateway."""

    TRANSPORT = "transport"  # network failure or timeout
    FORMAT = "format"  # body is not the expected JSON (e.g. an HTML error page)
    BUSINESS = "business"  # structured response with a non-zero errorCode
    CONFIGURATION = "configuration"  # credentials not set


class GatewayError(Exception):
    """Normalized gateway failure. Callers must never treat it as success."""

    def __init__(
        self,
        kind: GatewayErrorKind,
        detail: str,
        code: str | None = None,
        raw: dict[str, Any] | None = None,
    ) -> None:
        self.kind = kind
        self.detail = detail
        self.code = code
        self.raw = raw
        super().__init__(f"{kind.value}: {detail}")
