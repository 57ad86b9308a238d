"""Read-only views over the credit transaction log."""

from uuid import UUID

from sqlalchemy import func, select

from src.core.base import BaseService
from src.database.models import CreditPackage, CreditTransaction


class CreditHistoryService(BaseService):
    async def list_transactions(
        self, user_id: UUID, limit: int = 50, offset: int = 0
    ) -> tuple[list[CreditTransaction], int]:
        total = await self.db.scalar(
            select(func.count())
            .select_from(CreditTransaction)
            .where(CreditTransaction.user_id == user_id)
        )
        result = await self.db.execute(
            select(CreditTransaction)
            .where(CreditTransaction.user_id == user_id)
            .order_by(CreditTransaction.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def list_active_packages(self) -> list[CreditPackage]:
        result = await self.db.execute(
            select(CreditPackage)
            .where(CreditPackage.is_active.is_(True))
            .order_by(CreditPackage.credits_amount.asc().nulls_last())
        )
        return list(result.scalars().all())
