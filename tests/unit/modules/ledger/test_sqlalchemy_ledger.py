"""In-process ledger tests against a real database session."""

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from src.database.models import (
    CreditTransaction,
    PaymentStatus,
    TransactionType,
    UserProfile,
    VideoGeneration,
    VideoStatus,
)
from src.modules.ledger import SQLAlchemyLedger
from tests.factories import (
    CreditPurchaseFactory,
    UserProfileFactory,
    VideoGenerationFactory,
)


async def balance_of(db_session, user_id) -> int:
    return await db_session.scalar(
        select(UserProfile.credits_balance).where(UserProfile.id == user_id)
    )


async def transactions_of(db_session, user_id) -> list[CreditTransaction]:
    result = await db_session.execute(
        select(CreditTransaction)
        .where(CreditTransaction.user_id == user_id)
        .order_by(CreditTransaction.created_at)
    )
    return list(result.scalars().all())


class TestApplyPurchase:
    @pytest.fixture
    def ledger(self, service_session):
        return SQLAlchemyLedger(service_session)

    @pytest_asyncio.fixture
    async def user(self, db_session):
        return await UserProfileFactory.create_async(db_session, credits_balance=2)

    @pytest.mark.asyncio
    async def test_approved_purchase_credits_once(self, ledger, db_session, user):
        purchase = await CreditPurchaseFactory.create_async(
            db_session,
            user_id=user.id,
            credits_amount=10,
            payment_status=PaymentStatus.APPROVED.value,
        )

        first = await ledger.apply_purchase(purchase.id)
        second = await ledger.apply_purchase(purchase.id)

        assert first.success and not first.already_applied
        assert first.new_balance == 12
        assert second.success and second.already_applied
        assert second.new_balance == 12
        assert await balance_of(db_session, user.id) == 12

        entries = await transactions_of(db_session, user.id)
        assert len(entries) == 1
        assert entries[0].transaction_type == TransactionType.PURCHASE.value
        assert entries[0].amount == 10
        assert entries[0].balance_after == 12
        assert entries[0].purchase_id == purchase.id

    @pytest.mark.asyncio
    async def test_pending_purchase_is_not_credited(self, ledger, db_session, user):
        purchase = await CreditPurchaseFactory.create_async(db_session, user_id=user.id)

        result = await ledger.apply_purchase(purchase.id)

        assert not result.success
        assert "not approved" in result.error
        assert await balance_of(db_session, user.id) == 2

    @pytest.mark.asyncio
    async def test_unknown_purchase(self, ledger):
        from uuid import uuid4

        result = await ledger.apply_purchase(uuid4())

        assert not result.success
        assert result.error == "Purchase not found"


class TestVideoConsumption:
    @pytest.fixture
    def ledger(self, service_session):
        return SQLAlchemyLedger(service_session)

    @pytest.mark.asyncio
    async def test_consume_once_per_video(self, ledger, db_session, test_user):
        video = await VideoGenerationFactory.create_async(db_session, user_id=test_user.id)

        first = await ledger.consume_credit_for_video(test_user.id, video.id)
        second = await ledger.consume_credit_for_video(test_user.id, video.id)

        assert first.success
        assert first.new_balance == 4
        assert not second.success
        assert second.error == "Credit already consumed for video"
        assert await balance_of(db_session, test_user.id) == 4

    @pytest.mark.asyncio
    async def test_insufficient_credits_leaves_video_untouched(
        self, ledger, db_session, broke_user
    ):
        video = await VideoGenerationFactory.create_async(
            db_session, user_id=broke_user.id
        )

        result = await ledger.consume_credit_for_video(broke_user.id, video.id)

        assert not result.success
        assert result.error == "Insufficient credits"
        await db_session.refresh(video)
        assert video.credits_used == 0
        assert await balance_of(db_session, broke_user.id) == 0

    @pytest.mark.asyncio
    async def test_other_users_video_is_not_found(self, ledger, db_session, test_user):
        other = await UserProfileFactory.create_async(db_session, credits_balance=3)
        video = await VideoGenerationFactory.create_async(db_session, user_id=other.id)

        result = await ledger.consume_credit_for_video(test_user.id, video.id)

        assert not result.success
        assert result.error == "Video not found"

    @pytest.mark.asyncio
    async def test_refund_returns_credit_once(self, ledger, db_session, test_user):
        video = await VideoGenerationFactory.create_async(db_session, user_id=test_user.id)
        await ledger.consume_credit_for_video(test_user.id, video.id)

        first = await ledger.refund_for_video(video.id)
        second = await ledger.refund_for_video(video.id)

        assert first.success
        assert first.new_balance == 5
        assert not second.success
        assert second.error == "No credits to refund"
        assert await balance_of(db_session, test_user.id) == 5

        entries = await transactions_of(db_session, test_user.id)
        assert sorted(e.transaction_type for e in entries) == [
            TransactionType.CONSUMPTION.value,
            TransactionType.REFUND.value,
        ]
        assert sum(e.amount for e in entries) == 0

    @pytest.mark.asyncio
    async def test_refund_without_consumption(self, ledger, db_session, test_user):
        video = await VideoGenerationFactory.create_async(db_session, user_id=test_user.id)

        result = await ledger.refund_for_video(video.id)

        assert not result.success
        assert await balance_of(db_session, test_user.id) == 5


class TestAtomicReservation:
    @pytest.fixture
    def ledger(self, service_session):
        return SQLAlchemyLedger(service_session)

    @pytest.mark.asyncio
    async def test_creates_pending_video_with_credit_held(
        self, ledger, db_session, test_user
    ):
        reservation = await ledger.create_video_and_consume_credit(
            test_user.id, "a cat dancing", None
        )

        assert reservation.success
        assert reservation.new_balance == 4
        video = await db_session.get(VideoGeneration, reservation.video_id)
        assert video.status == VideoStatus.PENDING.value
        assert video.credits_used == 1

    @pytest.mark.asyncio
    async def test_insufficient_credits_creates_nothing(
        self, ledger, db_session, broke_user
    ):
        reservation = await ledger.create_video_and_consume_credit(
            broke_user.id, "a cat dancing", None
        )

        assert not reservation.success
        assert reservation.error == "Insufficient credits"
        assert reservation.video_id is None
        count = await db_session.scalar(
            select(func.count()).select_from(VideoGeneration)
        )
        assert count == 0

    @pytest.mark.asyncio
    async def test_get_balance_for_unknown_user_is_zero(self, ledger):
        from uuid import uuid4

        assert await ledger.get_balance(uuid4()) == 0
