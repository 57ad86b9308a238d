"""Shared reconciliation flow for payment notifications.

Both processors settle a purchase from the gateway's view of a payment and
then ask the ledger to grant the credits. Every call to ``process`` writes
exactly one audit row, whatever branch it ends in.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.database.models import CreditPurchase, PaymentStatus
from src.modules.ledger import Ledger, LedgerError
from src.modules.payments.audit import WebhookAuditLog
from src.modules.payments.events import WebhookEvent, WebhookEventType
from src.modules.payments.gateway import GatewayPayment, PaymentGatewayClient
from src.modules.payments.repository import PurchaseRepository
from src.modules.payments.state import map_gateway_status
from src.utils.settings.mercadopago import MercadoPagoSettings


@dataclass
class ReconciliationResult:
    success: bool
    message: str
    purchase_id: UUID | None = None
    status: str | None = None
    credits_applied: bool = False
    already_applied: bool = False
    new_balance: int | None = None
    gateway_unavailable: bool = False


class PaymentProcessor(BaseService, ABC):
    def __init__(
        self,
        db: AsyncSession,
        gateway: PaymentGatewayClient,
        ledger: Ledger,
        settings: MercadoPagoSettings | None = None,
    ):
        super().__init__(db)
        self.gateway = gateway
        self.ledger = ledger
        self.settings = settings or MercadoPagoSettings()
        self.purchases = PurchaseRepository(db)
        self.audit = WebhookAuditLog(db)

    async def process(
        self, event: WebhookEvent, signature: str | None = None
    ) -> ReconciliationResult:
        try:
            if event.type == WebhookEventType.MERCHANT_ORDER:
                result = await self.process_merchant_order(event)
            elif event.type == WebhookEventType.PAYMENT:
                result = await self.process_payment(event)
            else:
                result = ReconciliationResult(
                    success=True, message="Unknown event type ignored"
                )
        except Exception as e:
            await self.db.rollback()
            self.logger.exception(
                "payment_processing_error",
                event_type=event.type.value,
                resource_id=event.resource_id,
            )
            result = ReconciliationResult(
                success=False, message=f"Unexpected error: {type(e).__name__}: {e}"
            )

        log = self.logger.info if result.success else self.logger.warning
        log(
            "payment_notification_processed",
            event_type=event.type.value,
            resource_id=event.resource_id,
            success=result.success,
            message=result.message,
            purchase_id=str(result.purchase_id) if result.purchase_id else None,
            status=result.status,
            credits_applied=result.credits_applied,
        )
        await self.audit.record(
            payment_id=event.resource_id,
            event_type=event.type.value,
            payload=event.data,
            signature=signature,
            is_valid=result.success,
            error_message=None if result.success else result.message,
        )
        return result

    @abstractmethod
    async def process_payment(self, event: WebhookEvent) -> ReconciliationResult:
        ...

    @abstractmethod
    async def process_merchant_order(
        self, event: WebhookEvent
    ) -> ReconciliationResult:
        ...

    async def settle_and_apply(
        self, purchase: CreditPurchase, payment: GatewayPayment
    ) -> ReconciliationResult:
        """Move a purchase to the gateway's status and grant credits if approved."""
        purchase_id = purchase.id
        current = purchase.payment_status

        if current == PaymentStatus.APPROVED:
            if purchase.applied_at is not None:
                return ReconciliationResult(
                    success=True,
                    message="Purchase already applied",
                    purchase_id=purchase_id,
                    status=PaymentStatus.APPROVED.value,
                    already_applied=True,
                )
            # Approved by an earlier delivery that stopped before the ledger call
            return await self.apply_credits(purchase_id)

        if current != PaymentStatus.PENDING:
            return ReconciliationResult(
                success=False,
                message=f"Invalid purchase status: {current}",
                purchase_id=purchase_id,
                status=current,
            )

        target = map_gateway_status(payment.status)
        if target is None:
            return ReconciliationResult(
                success=True,
                message=f"Payment is {payment.status}, nothing to apply yet",
                purchase_id=purchase_id,
                status=PaymentStatus.PENDING.value,
            )

        self.check_amount(purchase, payment)

        settled = await self.purchases.settle(purchase_id, target, payment.id)
        if not settled:
            refreshed = await self.purchases.get(purchase_id)
            refreshed_status = refreshed.payment_status if refreshed else None
            if refreshed_status == PaymentStatus.APPROVED:
                return await self.apply_credits(purchase_id)
            if refreshed_status == target:
                return ReconciliationResult(
                    success=True,
                    message=f"Purchase already {target.value}",
                    purchase_id=purchase_id,
                    status=target.value,
                )
            return ReconciliationResult(
                success=False,
                message=f"Invalid purchase status: {refreshed_status}",
                purchase_id=purchase_id,
                status=refreshed_status,
            )

        if target != PaymentStatus.APPROVED:
            return ReconciliationResult(
                success=True,
                message=f"Purchase {target.value}",
                purchase_id=purchase_id,
                status=target.value,
            )

        return await self.apply_credits(purchase_id)

    async def apply_credits(self, purchase_id: UUID) -> ReconciliationResult:
        try:
            result = await self.ledger.apply_purchase(purchase_id)
        except LedgerError as e:
            return ReconciliationResult(
                success=False,
                message=f"Credit application failed: {e}"
                + (" (transient)" if e.transient else ""),
                purchase_id=purchase_id,
                status=PaymentStatus.APPROVED.value,
            )

        if not result.success:
            return ReconciliationResult(
                success=False,
                message=f"Credit application failed: {result.error}",
                purchase_id=purchase_id,
                status=PaymentStatus.APPROVED.value,
            )

        return ReconciliationResult(
            success=True,
            message=(
                "Credits already applied"
                if result.already_applied
                else "Credits applied"
            ),
            purchase_id=purchase_id,
            status=PaymentStatus.APPROVED.value,
            credits_applied=not result.already_applied,
            already_applied=result.already_applied,
            new_balance=result.new_balance,
        )

    def check_amount(self, purchase: CreditPurchase, payment: GatewayPayment) -> None:
        """Hook for amount checks; the default accepts any amount."""
