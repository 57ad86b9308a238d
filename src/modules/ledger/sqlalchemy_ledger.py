"""In-process ledger running each operation as one database transaction.

Idempotency comes from conditional UPDATEs on the marker columns
(``credit_purchases.applied_at`` and ``video_generations.credits_used``):
only the transaction that flips the marker gets to touch the balance.
The balance itself is only ever changed with SQL arithmetic, guarded by
``credits_balance >= cost`` for debits.
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from src.api.core.constants import VIDEO_CREDIT_COST
from src.core.base import BaseService
from src.database.models import (
    CreditPurchase,
    CreditTransaction,
    PaymentStatus,
    TransactionType,
    UserProfile,
    VideoGeneration,
    VideoStatus,
)
from .base import Ledger, LedgerResult, VideoReservation, ledger_error_from


class SQLAlchemyLedger(BaseService, Ledger):
    async def apply_purchase(self, purchase_id: UUID) -> LedgerResult:
        try:
            purchase = await self.db.scalar(
                select(CreditPurchase)
                .where(CreditPurchase.id == purchase_id)
                .with_for_update()
            )
            if purchase is None:
                await self.db.rollback()
                return LedgerResult(success=False, error="Purchase not found")

            user_id = purchase.user_id
            credits_amount = purchase.credits_amount

            if purchase.applied_at is not None:
                balance = await self._read_balance(user_id)
                await self.db.commit()
                return LedgerResult(
                    success=True, new_balance=balance, already_applied=True
                )

            if purchase.payment_status != PaymentStatus.APPROVED:
                await self.db.rollback()
                return LedgerResult(
                    success=False,
                    error=f"Purchase is {purchase.payment_status}, not approved",
                )

            claimed = await self.db.execute(
                update(CreditPurchase)
                .where(
                    CreditPurchase.id == purchase_id,
                    CreditPurchase.applied_at.is_(None),
                    CreditPurchase.payment_status == PaymentStatus.APPROVED.value,
                )
                .values(applied_at=datetime.now(timezone.utc))
            )
            if claimed.rowcount != 1:
                # Another transaction applied it first
                await self.db.rollback()
                balance = await self.get_balance(user_id)
                return LedgerResult(
                    success=True, new_balance=balance, already_applied=True
                )

            credited = await self._adjust_balance(user_id, credits_amount)
            if not credited:
                await self.db.rollback()
                return LedgerResult(success=False, error="User profile not found")

            new_balance = await self._read_balance(user_id)
            self.db.add(
                CreditTransaction(
                    user_id=user_id,
                    amount=credits_amount,
                    balance_after=new_balance,
                    transaction_type=TransactionType.PURCHASE.value,
                    purchase_id=purchase_id,
                    description=f"Purchase of {credits_amount} credits",
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ledger_error_from(e) from e

        self.logger.info(
            "credits_applied",
            purchase_id=str(purchase_id),
            user_id=str(user_id),
            credits=credits_amount,
            new_balance=new_balance,
        )
        return LedgerResult(success=True, new_balance=new_balance)

    async def consume_credit_for_video(
        self, user_id: UUID, video_id: UUID
    ) -> LedgerResult:
        try:
            flagged = await self.db.execute(
                update(VideoGeneration)
                .where(
                    VideoGeneration.id == video_id,
                    VideoGeneration.user_id == user_id,
                    VideoGeneration.credits_used == 0,
                )
                .values(credits_used=1)
            )
            if flagged.rowcount != 1:
                await self.db.rollback()
                exists = await self.db.scalar(
                    select(func.count())
                    .select_from(VideoGeneration)
                    .where(
                        VideoGeneration.id == video_id,
                        VideoGeneration.user_id == user_id,
                    )
                )
                error = (
                    "Credit already consumed for video" if exists else "Video not found"
                )
                return LedgerResult(success=False, error=error)

            if not await self._debit(user_id, VIDEO_CREDIT_COST):
                await self.db.rollback()
                balance = await self.get_balance(user_id)
                return LedgerResult(
                    success=False, new_balance=balance, error="Insufficient credits"
                )

            new_balance = await self._read_balance(user_id)
            self.db.add(
                CreditTransaction(
                    user_id=user_id,
                    amount=-VIDEO_CREDIT_COST,
                    balance_after=new_balance,
                    transaction_type=TransactionType.CONSUMPTION.value,
                    video_id=video_id,
                    description="Video generation",
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ledger_error_from(e) from e

        return LedgerResult(success=True, new_balance=new_balance)

    async def refund_for_video(self, video_id: UUID) -> LedgerResult:
        try:
            user_id = await self.db.scalar(
                select(VideoGeneration.user_id).where(VideoGeneration.id == video_id)
            )
            if user_id is None:
                await self.db.rollback()
                return LedgerResult(success=False, error="Video not found")

            released = await self.db.execute(
                update(VideoGeneration)
                .where(
                    VideoGeneration.id == video_id,
                    VideoGeneration.credits_used == 1,
                )
                .values(credits_used=0)
            )
            if released.rowcount != 1:
                balance = await self._read_balance(user_id)
                await self.db.commit()
                return LedgerResult(
                    success=False, new_balance=balance, error="No credits to refund"
                )

            # Net of earlier consumptions and refunds for this video
            net = await self.db.scalar(
                select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
                    CreditTransaction.video_id == video_id,
                    CreditTransaction.transaction_type.in_(
                        [
                            TransactionType.CONSUMPTION.value,
                            TransactionType.REFUND.value,
                        ]
                    ),
                )
            )
            amount = -int(net) if net and net < 0 else VIDEO_CREDIT_COST

            if not await self._adjust_balance(user_id, amount):
                await self.db.rollback()
                return LedgerResult(success=False, error="User profile not found")

            new_balance = await self._read_balance(user_id)
            self.db.add(
                CreditTransaction(
                    user_id=user_id,
                    amount=amount,
                    balance_after=new_balance,
                    transaction_type=TransactionType.REFUND.value,
                    video_id=video_id,
                    description="Refund for failed video generation",
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ledger_error_from(e) from e

        self.logger.info(
            "video_credit_refunded",
            video_id=str(video_id),
            user_id=str(user_id),
            amount=amount,
            new_balance=new_balance,
        )
        return LedgerResult(success=True, new_balance=new_balance)

    async def create_video_and_consume_credit(
        self, user_id: UUID, prompt: str, image_base64: str | None
    ) -> VideoReservation:
        try:
            if not await self._debit(user_id, VIDEO_CREDIT_COST):
                await self.db.rollback()
                balance = await self.get_balance(user_id)
                return VideoReservation(
                    success=False, new_balance=balance, error="Insufficient credits"
                )

            video = VideoGeneration(
                user_id=user_id,
                prompt=prompt,
                input_image_base64=image_base64,
                status=VideoStatus.PENDING.value,
                credits_used=1,
            )
            self.db.add(video)
            await self.db.flush()
            video_id = video.id

            new_balance = await self._read_balance(user_id)
            self.db.add(
                CreditTransaction(
                    user_id=user_id,
                    amount=-VIDEO_CREDIT_COST,
                    balance_after=new_balance,
                    transaction_type=TransactionType.CONSUMPTION.value,
                    video_id=video_id,
                    description="Video generation",
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ledger_error_from(e) from e

        return VideoReservation(success=True, video_id=video_id, new_balance=new_balance)

    async def get_balance(self, user_id: UUID) -> int:
        try:
            return await self._read_balance(user_id)
        except SQLAlchemyError as e:
            raise ledger_error_from(e) from e

    async def _read_balance(self, user_id: UUID) -> int:
        balance = await self.db.scalar(
            select(UserProfile.credits_balance).where(UserProfile.id == user_id)
        )
        return balance or 0

    async def _adjust_balance(self, user_id: UUID, amount: int) -> bool:
        result = await self.db.execute(
            update(UserProfile)
            .where(UserProfile.id == user_id)
            .values(credits_balance=UserProfile.credits_balance + amount)
        )
        return result.rowcount == 1

    async def _debit(self, user_id: UUID, amount: int) -> bool:
        result = await self.db.execute(
            update(UserProfile)
            .where(
                UserProfile.id == user_id,
                UserProfile.credits_balance >= amount,
            )
            .values(credits_balance=UserProfile.credits_balance - amount)
        )
        return result.rowcount == 1
