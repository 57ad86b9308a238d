"""Ingestion of MercadoPago notifications.

Runs the guards, normalizes the notification and hands it to the payment
processor. The gateway always gets an acknowledgement; every outcome is
recorded in the audit log instead.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.constants import (
    WEBHOOK_STATUS_ERROR,
    WEBHOOK_STATUS_FAILED,
    WEBHOOK_STATUS_FORBIDDEN_IP,
    WEBHOOK_STATUS_IGNORED,
    WEBHOOK_STATUS_INVALID_JSON,
    WEBHOOK_STATUS_INVALID_SIGNATURE,
    WEBHOOK_STATUS_PAYLOAD_TOO_LARGE,
    WEBHOOK_STATUS_PROCESSED,
    WEBHOOK_STATUS_RATE_LIMITED,
    WEBHOOK_STATUS_TIMEOUT,
)
from src.core.base import BaseService
from src.modules.payments.events import (
    WebhookEventType,
    build_body_from_query_params,
    is_valid_webhook_structure,
    parse_webhook_event,
)
from src.modules.payments.processors import PaymentProcessor
from src.modules.payments.security.ip_validator import IPValidator
from src.modules.payments.security.payload_sanitizer import (
    PayloadSanitizer,
    PayloadTooLargeError,
)
from src.modules.payments.security.rate_limiter import WebhookRateLimiter
from src.modules.payments.security.signature import verify_webhook_signature
from src.utils.settings.mercadopago import MercadoPagoSettings


@dataclass
class InboundWebhook:
    method: str
    raw_body: bytes
    client_ip: str
    query_params: Mapping[str, str] = field(default_factory=dict)
    signature: str | None = None
    request_id: str | None = None


def acknowledge(status: str) -> dict[str, Any]:
    return {"received": True, "status": status}


class WebhookIngestionService(BaseService):
    def __init__(
        self,
        db: AsyncSession,
        processor: PaymentProcessor,
        rate_limiter: WebhookRateLimiter,
        ip_validator: IPValidator,
        sanitizer: PayloadSanitizer,
        is_production: bool,
        settings: MercadoPagoSettings | None = None,
    ):
        super().__init__(db)
        self.processor = processor
        self.audit = processor.audit
        self.rate_limiter = rate_limiter
        self.ip_validator = ip_validator
        self.sanitizer = sanitizer
        self.is_production = is_production
        self.settings = settings or MercadoPagoSettings()

    async def handle(self, webhook: InboundWebhook) -> dict[str, Any]:
        try:
            return await self._handle(webhook)
        except Exception as e:
            await self.db.rollback()
            self.logger.exception("webhook_unhandled_error", method=webhook.method)
            await self.audit.record(
                payment_id=None,
                event_type="unknown",
                payload=None,
                signature=webhook.signature,
                is_valid=False,
                error_message=f"Unexpected error: {type(e).__name__}: {e}",
            )
            return acknowledge(WEBHOOK_STATUS_ERROR)

    async def _handle(self, webhook: InboundWebhook) -> dict[str, Any]:
        try:
            self.sanitizer.ensure_size(webhook.raw_body)
        except PayloadTooLargeError as e:
            self.logger.warning(
                "webhook_payload_too_large",
                size=len(webhook.raw_body),
                ip_address=webhook.client_ip,
            )
            return await self._reject(webhook, WEBHOOK_STATUS_PAYLOAD_TOO_LARGE, str(e))

        rate_limit = await self.rate_limiter.check(webhook.client_ip)
        if not rate_limit.is_allowed:
            return await self._reject(
                webhook,
                WEBHOOK_STATUS_RATE_LIMITED,
                f"Rate limit exceeded for {webhook.client_ip}",
            )

        if not self.ip_validator.is_valid(webhook.client_ip):
            return await self._reject(
                webhook,
                WEBHOOK_STATUS_FORBIDDEN_IP,
                f"Source IP {webhook.client_ip} not allowed",
            )

        try:
            body = self._read_body(webhook)
        except ValueError as e:
            self.logger.warning("webhook_invalid_json", error=str(e))
            return await self._reject(
                webhook, WEBHOOK_STATUS_INVALID_JSON, f"Invalid JSON body: {e}"
            )

        payload = self.sanitizer.sanitize(body)
        event = parse_webhook_event(payload)

        data_id = webhook.query_params.get("data.id") or (
            event.resource_id if event.type != WebhookEventType.UNKNOWN else None
        )
        secret = self.settings.MERCADOPAGO_WEBHOOK_SECRET
        verification = verify_webhook_signature(
            signature=webhook.signature,
            request_id=webhook.request_id,
            data_id=data_id,
            secret=secret.get_secret_value() if secret else None,
            is_production=self.is_production,
        )
        if not verification.is_valid:
            self.logger.warning(
                "webhook_invalid_signature",
                error=verification.error,
                ip_address=webhook.client_ip,
                resource_id=event.resource_id,
            )
            return await self._reject(
                webhook,
                WEBHOOK_STATUS_INVALID_SIGNATURE,
                verification.error or "Invalid signature",
                payment_id=event.resource_id,
                event_type=event.type.value,
                payload=payload,
            )

        if event.type == WebhookEventType.UNKNOWN or not is_valid_webhook_structure(
            payload
        ):
            self.logger.info("webhook_ignored", resource_id=event.resource_id)
            await self.audit.record(
                payment_id=event.resource_id,
                event_type=event.type.value,
                payload=payload,
                signature=webhook.signature,
                is_valid=True,
                error_message="Unrecognized notification ignored",
            )
            return acknowledge(WEBHOOK_STATUS_IGNORED)

        try:
            result = await asyncio.wait_for(
                self.processor.process(event, webhook.signature),
                timeout=self.settings.WEBHOOK_REQUEST_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            await self.db.rollback()
            self.logger.error(
                "webhook_processing_timeout",
                resource_id=event.resource_id,
                timeout=self.settings.WEBHOOK_REQUEST_TIMEOUT_SECONDS,
            )
            await self.audit.record(
                payment_id=event.resource_id,
                event_type=event.type.value,
                payload=payload,
                signature=webhook.signature,
                is_valid=False,
                error_message="Processing timed out",
            )
            return acknowledge(WEBHOOK_STATUS_TIMEOUT)

        return acknowledge(
            WEBHOOK_STATUS_PROCESSED if result.success else WEBHOOK_STATUS_FAILED
        )

    def _read_body(self, webhook: InboundWebhook) -> Any:
        if webhook.method.upper() == "GET" or not webhook.raw_body.strip():
            return build_body_from_query_params(webhook.query_params)
        return json.loads(webhook.raw_body)

    async def _reject(
        self,
        webhook: InboundWebhook,
        status: str,
        reason: str,
        payment_id: str | None = None,
        event_type: str = "unknown",
        payload: Any = None,
    ) -> dict[str, Any]:
        await self.audit.record(
            payment_id=payment_id or webhook.query_params.get("data.id"),
            event_type=event_type,
            payload=payload,
            signature=webhook.signature,
            is_valid=False,
            error_message=reason,
        )
        return acknowledge(status)
