"""Video processor tests: Vidu hand-off and refund compensation."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy import select

from src.database.models import UserProfile, VideoErrorCode, VideoGeneration, VideoStatus
from src.modules.ledger import LedgerError, SQLAlchemyLedger
from src.modules.video.processor import AsyncVideoProcessor
from src.modules.video.vidu_client import ViduError


async def reserve(db_session, user_id, image_base64: str | None = None):
    reservation = await SQLAlchemyLedger(db_session).create_video_and_consume_credit(
        user_id, "perro corriendo", image_base64
    )
    return reservation.video_id


async def load_video(db_session, video_id) -> VideoGeneration:
    return await db_session.get(VideoGeneration, video_id, populate_existing=True)


async def balance_of(db_session, user_id) -> int:
    return await db_session.scalar(
        select(UserProfile.credits_balance).where(UserProfile.id == user_id)
    )


@pytest.fixture
def ledger(service_session):
    return SQLAlchemyLedger(service_session)


@pytest.fixture
def processor(service_session, ledger, mock_vidu, mock_vision):
    return AsyncVideoProcessor(service_session, ledger, mock_vidu, mock_vision)


class TestAsyncVideoProcessor:
    @pytest.mark.asyncio
    async def test_task_accepted_moves_to_processing(
        self, processor, mock_vidu, mock_vision, db_session, test_user
    ):
        video_id = await reserve(db_session, test_user.id)

        result = await processor.process(video_id)

        assert result.success
        assert result.status == VideoStatus.PROCESSING.value
        video = await load_video(db_session, video_id)
        assert video.status == VideoStatus.PROCESSING.value
        assert video.vidu_task_id == "vidu-task-1"
        assert video.translated_prompt == "Refined: perro corriendo"
        assert video.credits_used == 1
        mock_vision.describe_image.assert_not_awaited()
        mock_vidu.create_task.assert_awaited_once_with(
            "Refined: perro corriendo", None
        )

    @pytest.mark.asyncio
    async def test_image_is_described_before_refining(
        self, processor, mock_vision, db_session, test_user
    ):
        video_id = await reserve(db_session, test_user.id, "aGVsbG8=")

        await processor.process(video_id)

        mock_vision.describe_image.assert_awaited_once_with("aGVsbG8=")
        mock_vision.refine_prompt.assert_awaited_once_with(
            "perro corriendo", "A dog on a beach"
        )

    @pytest.mark.asyncio
    async def test_vidu_rejection_refunds_and_fails(
        self, processor, mock_vidu, db_session, test_user
    ):
        video_id = await reserve(db_session, test_user.id)
        mock_vidu.create_task.side_effect = ViduError("Vidu API error (400): bad", 400)

        result = await processor.process(video_id)

        assert not result.success
        assert result.refunded
        assert result.new_balance == 5
        assert result.error_code == VideoErrorCode.VIDU_API_ERROR.value
        video = await load_video(db_session, video_id)
        assert video.status == VideoStatus.FAILED.value
        assert video.error_code == VideoErrorCode.VIDU_API_ERROR.value
        assert video.error_message.endswith(" [Credits refunded]")
        assert video.credits_used == 0
        assert video.completed_at is not None
        assert await balance_of(db_session, test_user.id) == 5

    @pytest.mark.asyncio
    async def test_unexpected_error_refunds_as_processing_error(
        self, processor, mock_vision, db_session, test_user
    ):
        video_id = await reserve(db_session, test_user.id)
        mock_vision.refine_prompt.side_effect = RuntimeError("boom")

        result = await processor.process(video_id)

        assert not result.success
        assert result.error_code == VideoErrorCode.PROCESSING_ERROR.value
        assert "RuntimeError: boom" in result.error
        assert await balance_of(db_session, test_user.id) == 5

    @pytest.mark.asyncio
    async def test_failed_refund_is_written_into_error_message(
        self, processor, ledger, mock_vidu, db_session, test_user
    ):
        video_id = await reserve(db_session, test_user.id)
        mock_vidu.create_task.side_effect = ViduError("Vidu API unavailable")
        ledger.refund_for_video = AsyncMock(
            side_effect=LedgerError("OperationalError: gone", transient=True)
        )

        result = await processor.process(video_id)

        assert not result.refunded
        video = await load_video(db_session, video_id)
        assert video.status == VideoStatus.FAILED.value
        assert "[Refund failed: OperationalError: gone]" in video.error_message
        assert video.credits_used == 1
        assert await balance_of(db_session, test_user.id) == 4

    @pytest.mark.asyncio
    async def test_video_no_longer_pending_is_left_alone(
        self, processor, mock_vidu, db_session, test_user
    ):
        video_id = await reserve(db_session, test_user.id)
        await processor.process(video_id)

        again = await processor.process(video_id)

        assert again.success
        assert again.status == VideoStatus.PROCESSING.value
        assert mock_vidu.create_task.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_video(self, processor, mock_vidu):
        result = await processor.process(uuid4())

        assert not result.success
        mock_vidu.create_task.assert_not_awaited()
