"""On-demand recovery for purchases whose notification never arrived."""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.database.models import PaymentStatus
from src.modules.ledger import Ledger
from src.modules.payments.gateway import GatewayError, PaymentGatewayClient
from src.modules.payments.processors import ProductionPaymentProcessor
from src.utils.settings.mercadopago import MercadoPagoSettings


@dataclass
class PendingCheckSummary:
    processed: int
    checked: int
    total_pending: int
    message: str


class PendingPaymentChecker(BaseService):
    """Re-queries the gateway for a user's pending purchases.

    Settling and crediting reuse the webhook processor's logic, so a purchase
    the webhook already handled is never credited again.
    """

    def __init__(
        self,
        db: AsyncSession,
        gateway: PaymentGatewayClient,
        ledger: Ledger,
        settings: MercadoPagoSettings | None = None,
    ):
        super().__init__(db)
        self.settings = settings or MercadoPagoSettings()
        self.gateway = gateway
        self.reconciler = ProductionPaymentProcessor(db, gateway, ledger, self.settings)

    async def check(self, user_id: UUID, limit: int | None = None) -> PendingCheckSummary:
        limit = limit or self.settings.PENDING_CHECK_LIMIT
        pending = await self.reconciler.purchases.list_pending_for_user(user_id, limit)
        if not pending:
            return PendingCheckSummary(
                processed=0, checked=0, total_pending=0, message="No pending payments"
            )

        # Plain values only: a failed ledger call rolls back and expires loaded rows
        candidates = [(p.id, p.preference_id) for p in pending]
        total_pending = len(candidates)

        processed = 0
        checked = 0
        for purchase_id, preference_id in candidates:
            checked += 1
            if not preference_id:
                continue

            try:
                payments = await self.gateway.search_payments_by_preference(
                    preference_id
                )
            except GatewayError as e:
                self.logger.warning(
                    "pending_check_search_failed",
                    purchase_id=str(purchase_id),
                    preference_id=preference_id,
                    error=str(e),
                )
                continue

            if not payments:
                continue

            purchase = await self.reconciler.purchases.get(purchase_id)
            if purchase is None:
                continue
            result = await self.reconciler.settle_and_apply(purchase, payments[0])
            self.logger.info(
                "pending_purchase_checked",
                purchase_id=str(purchase_id),
                payment_id=payments[0].id,
                gateway_status=payments[0].status,
                success=result.success,
                message=result.message,
            )
            if result.success and result.status != PaymentStatus.PENDING.value:
                processed += 1

        return PendingCheckSummary(
            processed=processed,
            checked=checked,
            total_pending=total_pending,
            message=f"Processed {processed} of {checked} checked payments",
        )
