from uuid import UUID

from src.database.models import PaymentStatus
from src.modules.payments.events import WebhookEvent
from .base import PaymentProcessor, ReconciliationResult


class DevelopmentPaymentProcessor(PaymentProcessor):
    """Approves the most recent pending purchase without asking the gateway.

    Sandbox notifications rarely reach a local machine, so any notification
    is taken as confirmation for the newest pending purchase.
    """

    async def process_payment(self, event: WebhookEvent) -> ReconciliationResult:
        return await self._approve_latest(event)

    async def process_merchant_order(
        self, event: WebhookEvent
    ) -> ReconciliationResult:
        return await self._approve_latest(event)

    async def _approve_latest(self, event: WebhookEvent) -> ReconciliationResult:
        test_user = self.settings.DEV_TEST_USER_ID
        purchase = await self.purchases.latest_pending(
            UUID(test_user) if test_user else None
        )
        if purchase is None:
            return ReconciliationResult(
                success=False, message="No pending purchase found"
            )

        purchase_id = purchase.id
        payment_id = f"dev_{event.type.value}_{event.resource_id}"
        self.logger.info(
            "dev_purchase_approved", purchase_id=str(purchase_id), payment_id=payment_id
        )

        if not await self.purchases.settle(
            purchase_id, PaymentStatus.APPROVED, payment_id
        ):
            return ReconciliationResult(
                success=False,
                message="Purchase was settled concurrently",
                purchase_id=purchase_id,
            )
        return await self.apply_credits(purchase_id)
