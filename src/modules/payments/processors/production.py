from uuid import UUID

from src.database.models import CreditPurchase
from src.modules.payments.events import WebhookEvent
from src.modules.payments.gateway import GatewayError, GatewayPayment
from src.modules.payments.validation import (
    is_valid_payment_id,
    is_valid_purchase_reference,
)
from .base import PaymentProcessor, ReconciliationResult

AMOUNT_TOLERANCE = 0.01


class ProductionPaymentProcessor(PaymentProcessor):
    """Trusts nothing but the gateway's own record of the payment."""

    async def process_payment(self, event: WebhookEvent) -> ReconciliationResult:
        return await self.process_payment_id(event.resource_id)

    async def process_merchant_order(
        self, event: WebhookEvent
    ) -> ReconciliationResult:
        order_id = event.resource_id
        if not is_valid_payment_id(order_id):
            self.logger.warning("invalid_merchant_order_id", order_id=order_id)
            return ReconciliationResult(
                success=False, message=f"Invalid merchant order id: {order_id[:50]}"
            )

        try:
            order = await self.gateway.get_merchant_order(order_id)
        except GatewayError as e:
            return ReconciliationResult(
                success=False,
                message=f"Could not fetch merchant order {order_id}: {e}",
            )

        payment_id = order.first_payment_id
        if not payment_id:
            return ReconciliationResult(
                success=True,
                message=f"Merchant order {order_id} has no payments yet",
            )
        return await self.process_payment_id(payment_id)

    async def process_payment_id(self, payment_id: str) -> ReconciliationResult:
        payment = await self._fetch_payment(payment_id)
        if isinstance(payment, ReconciliationResult):
            return payment

        reference = payment.external_reference
        if not is_valid_purchase_reference(reference):
            self.logger.warning(
                "invalid_external_reference",
                payment_id=payment_id,
                external_reference=(reference or "")[:100],
            )
            return ReconciliationResult(
                success=False, message="Invalid external reference"
            )

        purchase = await self.purchases.get(UUID(reference))
        if purchase is None:
            self.logger.warning(
                "purchase_not_found", payment_id=payment_id, purchase_id=reference
            )
            return ReconciliationResult(
                success=False, message=f"Purchase {reference} not found"
            )

        return await self.settle_and_apply(purchase, payment)

    async def process_payment_for_purchase(
        self, payment_id: str, purchase: CreditPurchase
    ) -> ReconciliationResult:
        """Reconcile a payment the buyer reports for one of their purchases.

        The gateway's ``external_reference`` must name ``purchase``; the
        caller's word for the pairing is never taken on its own.
        """
        payment = await self._fetch_payment(payment_id)
        if isinstance(payment, ReconciliationResult):
            return payment

        if payment.external_reference != str(purchase.id):
            self.logger.warning(
                "external_reference_mismatch",
                payment_id=payment_id,
                purchase_id=str(purchase.id),
                external_reference=(payment.external_reference or "")[:100],
            )
            return ReconciliationResult(
                success=False,
                message="External reference mismatch",
                purchase_id=purchase.id,
            )

        return await self.settle_and_apply(purchase, payment)

    async def _fetch_payment(
        self, payment_id: str
    ) -> GatewayPayment | ReconciliationResult:
        if not is_valid_payment_id(payment_id):
            self.logger.warning("invalid_payment_id", payment_id=payment_id[:50])
            return ReconciliationResult(
                success=False, message=f"Invalid payment id: {payment_id[:50]}"
            )

        try:
            return await self.gateway.get_payment_with_retry(
                payment_id,
                max_attempts=self.settings.PAYMENT_FETCH_MAX_ATTEMPTS,
                backoff_seconds=self.settings.PAYMENT_FETCH_BACKOFF_SECONDS,
            )
        except GatewayError as e:
            return ReconciliationResult(
                success=False,
                message=f"Could not fetch payment {payment_id}: {e}",
                gateway_unavailable=True,
            )

    def check_amount(self, purchase: CreditPurchase, payment: GatewayPayment) -> None:
        if not self.settings.STRICT_AMOUNT_VALIDATION:
            return
        if payment.transaction_amount is None:
            return

        expected = (
            float(purchase.price_paid)
            if purchase.price_paid is not None
            else purchase.credits_amount * self.settings.PRICE_PER_CREDIT
        )
        if abs(payment.transaction_amount - expected) > AMOUNT_TOLERANCE:
            self.logger.warning(
                "payment_amount_mismatch",
                purchase_id=str(purchase.id),
                payment_id=payment.id,
                expected=expected,
                received=payment.transaction_amount,
            )
