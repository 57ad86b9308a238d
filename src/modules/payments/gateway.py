"""Async wrapper around the MercadoPago SDK.

The SDK is synchronous and its own timeout option does not bound the whole
call, so every request runs in a worker thread raced against
``asyncio.wait_for``.
"""

import asyncio
from typing import Any, Awaitable, Callable

import mercadopago
from pydantic import BaseModel, ConfigDict

from src.utils.logger import get_logger
from src.utils.settings.mercadopago import MercadoPagoSettings

logger = get_logger(__name__)


class GatewayError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class GatewayTimeoutError(GatewayError):
    pass


class GatewayPayment(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    status: str | None = None
    status_detail: str | None = None
    external_reference: str | None = None
    transaction_amount: float | None = None
    date_created: str | None = None


class MerchantOrder(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    status: str | None = None
    external_reference: str | None = None
    payments: list[GatewayPayment] = []

    @property
    def first_payment_id(self) -> str | None:
        return self.payments[0].id if self.payments else None


class PaymentGatewayClient:
    def __init__(
        self,
        access_token: str,
        timeout_seconds: float = 8.0,
        sdk: Any | None = None,
    ):
        self.sdk = sdk or mercadopago.SDK(access_token)
        self.timeout_seconds = timeout_seconds

    async def get_payment(self, payment_id: str) -> GatewayPayment:
        response = await self._call("payment.get", self.sdk.payment().get, payment_id)
        return GatewayPayment.model_validate(response)

    async def get_payment_with_retry(
        self,
        payment_id: str,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> GatewayPayment:
        """Fetch a payment, retrying only while the gateway answers 404.

        Freshly created payments are not always visible right away.
        """
        for attempt in range(1, max_attempts + 1):
            try:
                return await self.get_payment(payment_id)
            except GatewayError as e:
                if not e.is_not_found or attempt == max_attempts:
                    raise
                logger.info(
                    "payment_not_visible_yet",
                    payment_id=payment_id,
                    attempt=attempt,
                    max_attempts=max_attempts,
                )
                await sleep(backoff_seconds)
        raise GatewayError(f"Payment {payment_id} not found", status_code=404)

    async def search_payments_by_preference(
        self, preference_id: str
    ) -> list[GatewayPayment]:
        filters = {
            "preference_id": preference_id,
            "sort": "date_created",
            "criteria": "desc",
        }
        response = await self._call(
            "payment.search", self.sdk.payment().search, filters
        )
        results = [
            GatewayPayment.model_validate(item)
            for item in (response or {}).get("results", [])
        ]
        return sorted(results, key=lambda p: p.date_created or "", reverse=True)

    async def get_merchant_order(self, order_id: str) -> MerchantOrder:
        response = await self._call(
            "merchant_order.get", self.sdk.merchant_order().get, order_id
        )
        return MerchantOrder.model_validate(response)

    async def create_preference(self, preference_data: dict) -> dict:
        return await self._call(
            "preference.create", self.sdk.preference().create, preference_data
        )

    async def _call(self, operation: str, func: Callable, *args: Any) -> Any:
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(func, *args), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "gateway_timeout", operation=operation, timeout=self.timeout_seconds
            )
            raise GatewayTimeoutError(
                f"{operation} timed out after {self.timeout_seconds}s"
            ) from e
        except Exception as e:
            logger.error("gateway_request_failed", operation=operation, error=str(e))
            raise GatewayError(f"{operation} failed: {e}") from e

        status = result.get("status") if isinstance(result, dict) else None
        response = result.get("response") if isinstance(result, dict) else None
        if not isinstance(status, int) or not 200 <= status < 300:
            message = (
                response.get("message")
                if isinstance(response, dict)
                else "Unexpected gateway response"
            )
            raise GatewayError(f"{operation} failed: {message}", status_code=status)
        return response


def get_gateway_client() -> PaymentGatewayClient:
    """Get payment gateway client for dependency injection."""
    settings = MercadoPagoSettings()
    return PaymentGatewayClient(
        settings.MERCADOPAGO_ACCESS_TOKEN.get_secret_value(),
        timeout_seconds=settings.GATEWAY_TIMEOUT_SECONDS,
    )
