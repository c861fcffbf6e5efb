"""JCC card payment gateway adapter.

JCC REST API (register.do / getOrderStatusExtended.do), form-encoded
requests and JSON responses. Test and production environments use separate
hosts and credentials.
"""

import json
import logging
from typing import Any

import httpx

from app.config import settings
from app.core.exceptions import GatewayError, GatewayErrorKind
from app.gateways.base import (
    CreateOrderResult,
    CustomerDetails,
    GatewayType,
    PaymentGateway,
    VerifyOrderResult,
)

logger = logging.getLogger(__name__)

REGISTER_PATH = "/payment/rest/register.do"
ORDER_STATUS_PATH = "/payment/rest/getOrderStatusExtended.do"

_SNIPPET_LENGTH = 200


class JCCGateway(PaymentGateway):
    """JCC payment gateway implementation."""

    def __init__(
        self,
        test_mode: bool | None = None,
        api_url: str | None = None,
        login: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.test_mode = settings.gateway_test_mode if test_mode is None else test_mode
        if self.test_mode:
            self.api_url = api_url or settings.gateway_test_api_url
            self.login = login if login is not None else settings.gateway_test_login
            self.password = password if password is not None else settings.gateway_test_password
        else:
            self.api_url = api_url or settings.gateway_prod_api_url
            self.login = login if login is not None else settings.gateway_prod_login
            self.password = password if password is not None else settings.gateway_prod_password
        self.timeout = timeout or settings.gateway_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.JCC

    @property
    def mode(self) -> str:
        return "test" if self.test_mode else "production"

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client with a bounded timeout."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ==================== HELPERS ====================

    def _credentials(self) -> dict[str, str]:
        if not self.login or not self.password:
            raise GatewayError(
                GatewayErrorKind.CONFIGURATION,
                f"JCC {self.mode} credentials not configured",
            )
        return {"userName": self.login, "password": self.password}

    def _currency_code(self, currency: str) -> str:
        """ISO-4217 numeric code for an alpha code ('EUR' -> '978')."""
        if currency.isdigit():
            return currency
        code = settings.currency_numeric_codes.get(currency.upper())
        if code is None:
            raise GatewayError(
                GatewayErrorKind.CONFIGURATION,
                f"No numeric currency code configured for {currency}",
            )
        return code

    def _currency_alpha(self, numeric: Any) -> str | None:
        if numeric is None:
            return None
        numeric = str(numeric)
        for alpha, code in settings.currency_numeric_codes.items():
            if code == numeric:
                return alpha
        return numeric

    async def _post(self, path: str, payload: dict[str, str]) -> dict[str, Any]:
        """POST a form and return the decoded JSON object.

        Raises:
            GatewayError: transport failure or a body that is not a JSON object
        """
        try:
            response = await self.client.post(path, data=payload)
        except httpx.TimeoutException as e:
            raise GatewayError(
                GatewayErrorKind.TRANSPORT,
                f"Gateway did not answer within {self.timeout:g}s",
            ) from e
        except httpx.HTTPError as e:
            raise GatewayError(
                GatewayErrorKind.TRANSPORT,
                f"Network error while contacting gateway: {e.__class__.__name__}",
            ) from e

        body = response.text
        try:
            data = json.loads(body)
        except ValueError:
            data = None

        if not isinstance(data, dict):
            snippet = body[:_SNIPPET_LENGTH]
            if "<!DOCTYPE" in body or "<html" in body.lower():
                detail = (
                    f"Gateway returned an HTML page (HTTP {response.status_code}); "
                    "check credentials and API URL"
                )
            else:
                detail = f"Gateway returned a non-JSON response (HTTP {response.status_code})"
            raise GatewayError(
                GatewayErrorKind.FORMAT,
                detail,
                raw={"http_status": response.status_code, "body": snippet},
            )
        return data

    @staticmethod
    def _error_code(data: dict[str, Any]) -> str | None:
        code = data.get("errorCode")
        if code is None or str(code).strip() == "":
            return None
        return str(code).strip()

    # ==================== OPERATIONS ====================

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
        """Register an order with JCC (register.do)."""
        try:
            payload = {
                **self._credentials(),
                "amount": str(amount),
                "currency": self._currency_code(currency),
                "orderNumber": reference,
                "description": description,
                "returnUrl": return_url,
                "failUrl": fail_url,
                "jsonParams": json.dumps(extra_params or {}),
            }
            if customer and customer.email:
                payload["email"] = customer.email
            if customer and customer.phone:
                payload["phone"] = customer.phone

            logger.info(f"JCC register order {reference}: amount={amount} {currency} ({self.mode})")
            data = await self._post(REGISTER_PATH, payload)
        except GatewayError as e:
            logger.warning(f"JCC register order {reference} failed: {e}")
            return CreateOrderResult.failed(e)

        if data.get("orderId") and data.get("formUrl"):
            return CreateOrderResult(
                success=True,
                external_order_id=str(data["orderId"]),
                redirect_url=data["formUrl"],
                raw_response=data,
            )

        code = self._error_code(data)
        if code is not None and code != "0":
            error = GatewayError(
                GatewayErrorKind.BUSINESS,
                data.get("errorMessage") or "Failed to create payment order",
                code=code,
                raw=data,
            )
        else:
            error = GatewayError(
                GatewayErrorKind.FORMAT,
                "Unexpected response from payment gateway",
                raw=data,
            )
        logger.warning(f"JCC register order {reference} failed: {error}")
        return CreateOrderResult.failed(error)

    async def verify_order(self, external_order_id: str) -> VerifyOrderResult:
        """Query order status with JCC (getOrderStatusExtended.do)."""
        try:
            payload = {**self._credentials(), "orderId": external_order_id}
            data = await self._post(ORDER_STATUS_PATH, payload)
        except GatewayError as e:
            logger.warning(f"JCC status query for {external_order_id} failed: {e}")
            return VerifyOrderResult.failed(e)

        code = self._error_code(data)
        if code is None:
            error = GatewayError(
                GatewayErrorKind.FORMAT,
                "Order status response carries no errorCode",
                raw=data,
            )
            logger.warning(f"JCC status query for {external_order_id} failed: {error}")
            return VerifyOrderResult.failed(error)

        if code != "0":
            error = GatewayError(
                GatewayErrorKind.BUSINESS,
                data.get("errorMessage") or f"JCC error code {code}",
                code=code,
                raw=data,
            )
            logger.warning(f"JCC status query for {external_order_id} failed: {error}")
            return VerifyOrderResult.failed(error)

        raw_status = data.get("orderStatus")
        amount = data.get("amount")
        return VerifyOrderResult(
            success=True,
            raw_status_code=None if raw_status is None else str(raw_status),
            amount=int(amount) if isinstance(amount, (int, str)) and str(amount).isdigit() else None,
            currency=self._currency_alpha(data.get("currency")),
            raw_response=data,
        )
