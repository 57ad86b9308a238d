"""Data access for credit purchases."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update

from src.core.base import BaseService
from src.database.models import CreditPurchase, PaymentStatus
from .state import transition_payment


class PurchaseRepository(BaseService):
    async def get(self, purchase_id: UUID) -> CreditPurchase | None:
        return await self.db.get(CreditPurchase, purchase_id, populate_existing=True)

    async def list_pending_for_user(
        self, user_id: UUID, limit: int = 10
    ) -> list[CreditPurchase]:
        result = await self.db.execute(
            select(CreditPurchase)
            .where(
                CreditPurchase.user_id == user_id,
                CreditPurchase.payment_status == PaymentStatus.PENDING.value,
            )
            .order_by(CreditPurchase.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def latest_pending(self, user_id: UUID | None = None) -> CreditPurchase | None:
        query = select(CreditPurchase).where(
            CreditPurchase.payment_status == PaymentStatus.PENDING.value,
            CreditPurchase.applied_at.is_(None),
        )
        if user_id is not None:
            query = query.where(CreditPurchase.user_id == user_id)
        return await self.db.scalar(
            query.order_by(CreditPurchase.created_at.desc()).limit(1)
        )

    async def create_pending(
        self,
        user_id: UUID,
        credits_amount: int,
        price_paid: Decimal | float,
        package_id: UUID | None = None,
        package_name: str | None = None,
        payment_method: str = "mercadopago",
    ) -> CreditPurchase:
        purchase = CreditPurchase(
            user_id=user_id,
            package_id=package_id,
            package_name=package_name,
            credits_amount=credits_amount,
            price_paid=price_paid,
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
        )
        self.db.add(purchase)
        await self.db.commit()
        return purchase

    async def set_preference_id(self, purchase_id: UUID, preference_id: str) -> None:
        await self.db.execute(
            update(CreditPurchase)
            .where(CreditPurchase.id == purchase_id)
            .values(preference_id=preference_id)
        )
        await self.db.commit()

    async def settle(
        self,
        purchase_id: UUID,
        target: PaymentStatus,
        payment_id: str | None = None,
    ) -> bool:
        """Move a pending purchase to ``target``.

        The update only matches while the row is still pending, so concurrent
        deliveries of the same notification settle it once. Returns whether
        this call made the transition.
        """
        new_status = transition_payment(PaymentStatus.PENDING, target)
        values: dict = {"payment_status": new_status.value}
        if payment_id is not None:
            values["payment_id"] = payment_id

        result = await self.db.execute(
            update(CreditPurchase)
            .where(
                CreditPurchase.id == purchase_id,
                CreditPurchase.payment_status == PaymentStatus.PENDING.value,
            )
            .values(**values)
        )
        await self.db.commit()

        settled = result.rowcount == 1
        self.logger.info(
            "purchase_settled" if settled else "purchase_settle_skipped",
            purchase_id=str(purchase_id),
            status=new_status.value,
            payment_id=payment_id,
        )
        return settled
