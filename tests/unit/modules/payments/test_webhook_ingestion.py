"""End-to-end tests of webhook ingestion at the service boundary."""

import asyncio
import hashlib
import hmac
import json
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from src.database.models import PaymentStatus, UserProfile, WebhookLog
from src.modules.ledger import SQLAlchemyLedger
from src.modules.payments.gateway import GatewayPayment
from src.modules.payments.processors import ProductionPaymentProcessor
from src.modules.payments.security.ip_validator import IPValidator
from src.modules.payments.security.payload_sanitizer import PayloadSanitizer
from src.modules.payments.security.rate_limiter import (
    InMemoryRateLimitStore,
    WebhookRateLimiter,
)
from src.modules.payments.security.signature import build_manifest
from src.modules.payments.webhook import InboundWebhook, WebhookIngestionService
from src.utils.settings.mercadopago import MercadoPagoSettings
from tests.factories import CreditPurchaseFactory

PAYMENT_ID = "123456789"
SECRET = "whsec-test"
MP_IP = "179.32.200.10"


def notification(**overrides) -> InboundWebhook:
    body = {"type": "payment", "action": "payment.updated", "data": {"id": PAYMENT_ID}}
    fields = {
        "method": "POST",
        "raw_body": json.dumps(body).encode(),
        "client_ip": MP_IP,
        "query_params": {"data.id": PAYMENT_ID, "type": "payment"},
        "request_id": "req-1",
    }
    fields.update(overrides)
    return InboundWebhook(**fields)


def signature_for(data_id: str, request_id: str, ts: str = "1704908010") -> str:
    manifest = build_manifest(data_id, request_id, ts)
    digest = hmac.new(SECRET.encode(), manifest.encode(), hashlib.sha256).hexdigest()
    return f"ts={ts},v1={digest}"


async def audit_count(db_session) -> int:
    return await db_session.scalar(select(func.count()).select_from(WebhookLog))


async def last_audit(db_session) -> WebhookLog:
    return await db_session.scalar(
        select(WebhookLog).order_by(WebhookLog.received_at.desc()).limit(1)
    )


@pytest_asyncio.fixture
async def purchase(db_session, test_user):
    return await CreditPurchaseFactory.create_async(
        db_session, user_id=test_user.id, credits_amount=10
    )


@pytest.fixture
def build_service(service_session, mock_gateway):
    def build(
        is_production: bool = False,
        limit: int = 60,
        enforce_ip: bool = False,
        **settings_overrides,
    ) -> WebhookIngestionService:
        settings = MercadoPagoSettings(
            PAYMENT_FETCH_MAX_ATTEMPTS=1, **settings_overrides
        )
        processor = ProductionPaymentProcessor(
            service_session, mock_gateway, SQLAlchemyLedger(service_session), settings
        )
        return WebhookIngestionService(
            service_session,
            processor,
            WebhookRateLimiter(InMemoryRateLimitStore(), limit=limit, window_seconds=60),
            IPValidator(
                settings.ALLOWED_IP_RANGES,
                is_production=is_production,
                enforce=enforce_ip,
            ),
            PayloadSanitizer(max_body_bytes=settings.WEBHOOK_MAX_BODY_BYTES),
            is_production=is_production,
            settings=settings,
        )

    return build


class TestWebhookIngestion:
    @pytest.mark.asyncio
    async def test_valid_notification_is_processed(
        self, build_service, mock_gateway, db_session, test_user, purchase
    ):
        mock_gateway.get_payment_with_retry.return_value = GatewayPayment(
            id=PAYMENT_ID, status="approved", external_reference=str(purchase.id)
        )

        ack = await build_service().handle(notification())

        assert ack == {"received": True, "status": "processed"}
        await db_session.refresh(purchase)
        assert purchase.payment_status == PaymentStatus.APPROVED.value
        balance = await db_session.scalar(
            select(UserProfile.credits_balance).where(UserProfile.id == test_user.id)
        )
        assert balance == 15
        assert await audit_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_action_only_notification_is_processed(
        self, build_service, mock_gateway, db_session, test_user, purchase
    ):
        mock_gateway.get_payment_with_retry.return_value = GatewayPayment(
            id=PAYMENT_ID, status="approved", external_reference=str(purchase.id)
        )
        body = {"action": "payment.updated", "data": {"id": PAYMENT_ID}}

        ack = await build_service().handle(
            notification(raw_body=json.dumps(body).encode(), query_params={})
        )

        assert ack == {"received": True, "status": "processed"}
        mock_gateway.get_payment_with_retry.assert_awaited_once()
        assert mock_gateway.get_payment_with_retry.await_args.args[0] == PAYMENT_ID
        balance = await db_session.scalar(
            select(UserProfile.credits_balance).where(UserProfile.id == test_user.id)
        )
        assert balance == 15

    @pytest.mark.asyncio
    async def test_signed_notification_in_production(
        self, build_service, mock_gateway, db_session, purchase
    ):
        mock_gateway.get_payment_with_retry.return_value = GatewayPayment(
            id=PAYMENT_ID, status="approved", external_reference=str(purchase.id)
        )
        service = build_service(
            is_production=True, enforce_ip=True, MERCADOPAGO_WEBHOOK_SECRET=SECRET
        )

        ack = await service.handle(
            notification(signature=signature_for(PAYMENT_ID, "req-1"))
        )

        assert ack["status"] == "processed"

    @pytest.mark.asyncio
    async def test_bad_signature_is_rejected_and_audited(
        self, build_service, mock_gateway, db_session
    ):
        service = build_service(MERCADOPAGO_WEBHOOK_SECRET=SECRET)

        ack = await service.handle(
            notification(signature=signature_for("999999999", "req-1"))
        )

        assert ack == {"received": True, "status": "invalid_signature"}
        mock_gateway.get_payment_with_retry.assert_not_awaited()
        row = await last_audit(db_session)
        assert not row.is_valid
        assert row.error_message == "Signature mismatch"
        assert await audit_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_missing_secret_in_production_is_rejected(
        self, build_service, mock_gateway
    ):
        ack = await build_service(is_production=True).handle(
            notification(signature="ts=1,v1=abc")
        )

        assert ack["status"] == "invalid_signature"
        mock_gateway.get_payment_with_retry.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_oversized_body(self, build_service, db_session):
        ack = await build_service().handle(notification(raw_body=b"x" * (10 * 1024 + 1)))

        assert ack["status"] == "payload_too_large"
        assert await audit_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_per_ip(self, build_service, mock_gateway, db_session):
        mock_gateway.get_payment_with_retry.return_value = GatewayPayment(
            id=PAYMENT_ID, status="in_process", external_reference=None
        )
        service = build_service(limit=1)

        await service.handle(notification())
        ack = await service.handle(notification())

        assert ack["status"] == "rate_limited"
        assert await audit_count(db_session) == 2

    @pytest.mark.asyncio
    async def test_source_ip_outside_allowlist(self, build_service, db_session):
        service = build_service(is_production=True, enforce_ip=True)

        ack = await service.handle(notification(client_ip="8.8.8.8"))

        assert ack["status"] == "forbidden_ip"
        row = await last_audit(db_session)
        assert "8.8.8.8" in row.error_message

    @pytest.mark.asyncio
    async def test_invalid_json(self, build_service, db_session):
        ack = await build_service().handle(notification(raw_body=b"{not json"))

        assert ack["status"] == "invalid_json"
        assert await audit_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_get_notification_built_from_query(
        self, build_service, mock_gateway, purchase
    ):
        mock_gateway.get_payment_with_retry.return_value = GatewayPayment(
            id=PAYMENT_ID, status="approved", external_reference=str(purchase.id)
        )

        ack = await build_service().handle(
            notification(
                method="GET",
                raw_body=b"",
                query_params={"topic": "payment", "id": PAYMENT_ID},
            )
        )

        assert ack["status"] == "processed"
        mock_gateway.get_payment_with_retry.assert_awaited_once()
        assert mock_gateway.get_payment_with_retry.await_args.args[0] == PAYMENT_ID

    @pytest.mark.asyncio
    async def test_unrecognized_notification_is_ignored(
        self, build_service, mock_gateway, db_session
    ):
        ack = await build_service().handle(
            notification(
                raw_body=json.dumps({"topic": "chargebacks", "resource": "x"}).encode(),
                query_params={},
            )
        )

        assert ack["status"] == "ignored"
        mock_gateway.get_payment_with_retry.assert_not_awaited()
        row = await last_audit(db_session)
        assert row.is_valid
        assert not row.processed

    @pytest.mark.asyncio
    async def test_failed_reconciliation_still_acknowledged(
        self, build_service, mock_gateway, db_session
    ):
        mock_gateway.get_payment_with_retry.return_value = GatewayPayment(
            id=PAYMENT_ID, status="approved", external_reference="bogus"
        )

        ack = await build_service().handle(notification())

        assert ack == {"received": True, "status": "failed"}
        assert await audit_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_slow_processing_times_out(self, build_service, db_session):
        service = build_service(WEBHOOK_REQUEST_TIMEOUT_SECONDS=0.05)

        async def slow_process(event, signature=None):
            await asyncio.sleep(1)

        service.processor.process = slow_process

        ack = await service.handle(notification())

        assert ack["status"] == "timeout"
        row = await last_audit(db_session)
        assert row.error_message == "Processing timed out"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_acknowledged(self, build_service, db_session):
        service = build_service()
        service.rate_limiter.check = AsyncMock(side_effect=RuntimeError("store down"))

        ack = await service.handle(notification())

        assert ack == {"received": True, "status": "error"}
        row = await last_audit(db_session)
        assert "store down" in row.error_message
