"""Payment confirmation after the buyer returns from MercadoPago checkout.

Covers the case where the notification is late or lost: the success page
reports the payment id it was redirected with, and the purchase is settled
from the gateway's record of that payment.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.modules.ledger import Ledger
from src.modules.payments.gateway import PaymentGatewayClient
from src.modules.payments.processors import (
    ProductionPaymentProcessor,
    ReconciliationResult,
)
from src.utils.settings.mercadopago import MercadoPagoSettings


class ConfirmationError(Exception):
    pass


class PurchaseNotFoundError(ConfirmationError):
    pass


class PurchaseOwnershipError(ConfirmationError):
    pass


class PaymentConfirmationService(BaseService):
    def __init__(
        self,
        db: AsyncSession,
        gateway: PaymentGatewayClient,
        ledger: Ledger,
        settings: MercadoPagoSettings | None = None,
    ):
        super().__init__(db)
        self.reconciler = ProductionPaymentProcessor(db, gateway, ledger, settings)

    async def confirm(
        self, user_id: UUID, purchase_id: UUID, payment_id: str
    ) -> ReconciliationResult:
        purchase = await self.reconciler.purchases.get(purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(f"Purchase {purchase_id} not found")
        if purchase.user_id != user_id:
            self.logger.warning(
                "payment_confirmation_ownership_mismatch",
                purchase_id=str(purchase_id),
                user_id=str(user_id),
            )
            raise PurchaseOwnershipError(f"Purchase {purchase_id} is not yours")

        if purchase.applied_at is not None:
            return ReconciliationResult(
                success=True,
                message="Purchase already applied",
                purchase_id=purchase_id,
                status=purchase.payment_status,
                already_applied=True,
            )

        result = await self.reconciler.process_payment_for_purchase(
            payment_id, purchase
        )
        self.logger.info(
            "payment_confirmed" if result.success else "payment_confirmation_failed",
            purchase_id=str(purchase_id),
            payment_id=payment_id,
            status=result.status,
            credits_applied=result.credits_applied,
            message=result.message,
        )
        return result
