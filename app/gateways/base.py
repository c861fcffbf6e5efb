"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
Adapters never raise for gateway failures; they return a result whose
``error`` carries a typed ``GatewayError``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.core.exceptions import GatewayError
from app.domain.payment_state import GatewayOrderStatus, map_gateway_status


class GatewayType(str, Enum):
    """Supported payment gateways."""

    JCC = "jcc"


@dataclass
class CustomerDetails:
    """Optional payer details forwarded to the hosted payment page."""

    email: str | None = None
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None


@dataclass
class CreateOrderResult:
    """Result of registering an order with the gateway."""

    success: bool
    external_order_id: str | None = None
    redirect_url: str | None = None
    error: GatewayError | None = None
    raw_response: dict[str, Any] | None = None

    @classmethod
    def failed(cls, error: GatewayError) -> "CreateOrderResult":
        return cls(success=False, error=error, raw_response=error.raw)


@dataclass
class VerifyOrderResult:
    """Result of an order-status query."""

    success: bool
    raw_status_code: str | None = None
    amount: int | None = None
    currency: str | None = None
    error: GatewayError | None = None
    raw_response: dict[str, Any] | None = field(default=None, repr=False)

    @classmethod
    def failed(cls, error: GatewayError) -> "VerifyOrderResult":
        return cls(success=False, error=error, raw_response=error.raw)

    @property
    def order_status(self) -> GatewayOrderStatus:
        """Paid only for a successful query reporting a paid/pre-authorized order."""
        if not self.success:
            return GatewayOrderStatus.NOT_PAID
        return map_gateway_status(self.raw_status_code)


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def create_order(
        self,
        amount: int,
        currency: str,
        reference: str,
        description: str,
        return_url: str,
        fail_url: str,
        customer: CustomerDetails | None = None,
        extra_params: dict[str, Any] | None = None,
    ) -> CreateOrderResult:
        """Register an order and obtain the hosted payment page URL.

        Args:
            amount: Amount in minor currency units (cents)
            currency: ISO-4217 alpha code (EUR)
            reference: Merchant order reference, unique per attempt
            description: Order description shown to the payer
            return_url: Redirect target after a completed payment
            fail_url: Redirect target after a declined/cancelled payment
            customer: Payer contact details
            extra_params: Values the gateway echoes back on redirect

        Returns:
            CreateOrderResult with external order id and redirect URL
        """
        pass

    @abstractmethod
    async def verify_order(self, external_order_id: str) -> VerifyOrderResult:
        """Query the status of a previously registered order.

        Args:
            external_order_id: Gateway order id returned by create_order

        Returns:
            VerifyOrderResult with the raw status code
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the adapter."""
        return None
