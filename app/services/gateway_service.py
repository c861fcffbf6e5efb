"""Payment gateway service.

Routes payment operations to the configured gateway adapter.
No business logic here - only gateway coordination.
"""

import logging

from app.config import settings
from app.core.exceptions import ConfigurationError
from app.gateways.base import GatewayType, PaymentGateway
from app.gateways.jcc import JCCGateway

logger = logging.getLogger(__name__)


def _is_production() -> bool:
    """Check if running in production environment."""
    return settings.environment == "production"


def _assert_gateway_mode(gateway: PaymentGateway) -> None:
    """Block the gateway's test host in production.

    Raises:
        ConfigurationError: If production is pointed at the test environment
    """
    if isinstance(gateway, JCCGateway) and gateway.test_mode and _is_production():
        raise ConfigurationError(
            "Gateway test mode is enabled in the production environment"
        )


class GatewayService:
    """Service for managing payment gateway adapters."""

    def __init__(self):
        self._gateways: dict[GatewayType, PaymentGateway] = {}

    def get_gateway(self, gateway_type: str | GatewayType = GatewayType.JCC) -> PaymentGateway:
        """Get or create gateway instance."""
        gateway_type = GatewayType(gateway_type)

        if gateway_type not in self._gateways:
            gateway = JCCGateway()
            _assert_gateway_mode(gateway)
            logger.info(f"Initialized {gateway_type.value} gateway ({gateway.mode} mode)")
            self._gateways[gateway_type] = gateway

        return self._gateways[gateway_type]

    async def close(self) -> None:
        """Close all adapter HTTP clients."""
        for gateway in self._gateways.values():
            await gateway.close()
        self._gateways.clear()


# Singleton instance
gateway_service = GatewayService()


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the configured gateway adapter."""
    return gateway_service.get_gateway()
