"""Entry point for user-triggered video generation and retries.

Everything that can reject a request (validation, moderation, balance)
runs before a credit is touched. The credit is then reserved together with
the video row and the processor takes over.
"""

import base64
import binascii
from dataclasses import dataclass
from uuid import UUID

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.constants import (
    MAX_IMAGE_BASE64_LENGTH,
    MAX_PROMPT_LENGTH,
    VIDEO_CREDIT_COST,
)
from src.api.core.exceptions.base import FotoReelException
from src.api.core.messages import MessageCode
from src.core.base import BaseService
from src.database.models import VideoErrorCode, VideoGeneration, VideoStatus
from src.modules.ledger import Ledger, LedgerError
from src.utils.settings.ledger import LedgerSettings
from .processor import AsyncVideoProcessor, VideoProcessingResult
from .repository import VideoRepository
from .vision import VisionService

RETRYABLE_ERROR_CODES = frozenset(
    {VideoErrorCode.VIDU_API_ERROR.value, VideoErrorCode.VIDU_ERROR.value}
)
INSUFFICIENT_CREDITS_ERROR = "Insufficient credits"
ALREADY_CONSUMED_ERROR = "Credit already consumed for video"


def validate_prompt(prompt: str | None) -> str:
    cleaned = (prompt or "").strip()
    if not cleaned or len(cleaned) > MAX_PROMPT_LENGTH:
        raise FotoReelException(
            MessageCode.VALIDATION_ERROR,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"field": "prompt", "max_length": MAX_PROMPT_LENGTH},
            message=f"Prompt must be between 1 and {MAX_PROMPT_LENGTH} characters",
        )
    return cleaned


def normalize_image_base64(image_base64: str | None) -> str | None:
    """Strip a ``data:`` URL prefix and check the rest decodes as base64."""
    if not image_base64:
        return None
    data = image_base64.strip()
    if data.startswith("data:"):
        _, _, data = data.partition(",")
    if not data or len(data) > MAX_IMAGE_BASE64_LENGTH:
        raise FotoReelException(
            MessageCode.VALIDATION_ERROR,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"field": "image_base64"},
            message="Image is empty or too large",
        )
    try:
        base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise FotoReelException(
            MessageCode.VALIDATION_ERROR,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            {"field": "image_base64"},
            message="Image is not valid base64",
        )
    return data


def is_retry_eligible(video: VideoGeneration) -> bool:
    return (
        video.status == VideoStatus.FAILED
        and video.error_code in RETRYABLE_ERROR_CODES
        and video.retry_count < video.max_retries
    )


@dataclass
class VideoGenerationOutcome:
    video: VideoGeneration
    result: VideoProcessingResult
    new_balance: int | None


class VideoGenerationOrchestrator(BaseService):
    def __init__(
        self,
        db: AsyncSession,
        ledger: Ledger,
        processor: AsyncVideoProcessor,
        vision: VisionService,
        settings: LedgerSettings | None = None,
    ):
        super().__init__(db)
        self.ledger = ledger
        self.processor = processor
        self.vision = vision
        self.settings = settings or LedgerSettings()
        self.videos = VideoRepository(db)

    async def generate(
        self, user_id: UUID, prompt: str, image_base64: str | None = None
    ) -> VideoGenerationOutcome:
        prompt = validate_prompt(prompt)
        image_base64 = normalize_image_base64(image_base64)

        if image_base64:
            check = await self.vision.check_nsfw(image_base64)
            if check.is_nsfw:
                video = await self.videos.create_failed(
                    user_id,
                    prompt,
                    None,
                    VideoErrorCode.NSFW_CONTENT,
                    f"NSFW content detected: {check.reason or 'inappropriate image'}",
                )
                raise FotoReelException(
                    MessageCode.NSFW_CONTENT,
                    status.HTTP_422_UNPROCESSABLE_ENTITY,
                    {"video_id": str(video.id), "reason": check.reason},
                )

        balance = await self._get_balance(user_id)
        if balance < VIDEO_CREDIT_COST:
            raise self._insufficient_credits(balance)

        if self.settings.USE_ATOMIC_VIDEO_RESERVATION:
            video_id, new_balance = await self._reserve_atomic(
                user_id, prompt, image_base64
            )
        else:
            video_id, new_balance = await self._reserve_with_failsafe(
                user_id, prompt, image_base64
            )

        result = await self.processor.process(video_id)
        return await self._outcome(video_id, result, new_balance)

    async def retry(self, user_id: UUID, video_id: UUID) -> VideoGenerationOutcome:
        video = await self.get_owned_video(user_id, video_id)
        if not is_retry_eligible(video):
            raise FotoReelException(
                MessageCode.VIDEO_NOT_RETRYABLE,
                status.HTTP_409_CONFLICT,
                {
                    "video_id": str(video_id),
                    "status": video.status,
                    "error_code": video.error_code,
                    "retry_count": video.retry_count,
                    "max_retries": video.max_retries,
                },
            )
        retry_count = video.retry_count

        try:
            consumed = await self.ledger.consume_credit_for_video(user_id, video_id)
        except LedgerError as e:
            raise self._ledger_failure(e)

        new_balance = consumed.new_balance
        if not consumed.success:
            if consumed.error == INSUFFICIENT_CREDITS_ERROR:
                raise self._insufficient_credits(consumed.new_balance or 0)
            if consumed.error != ALREADY_CONSUMED_ERROR:
                raise FotoReelException(
                    MessageCode.INTERNAL_ERROR,
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                    {"video_id": str(video_id)},
                )
            # An earlier refund failed, so the credit is still held for this video
            self.logger.warning("video_retry_reuses_held_credit", video_id=str(video_id))

        reset = await self.videos.transition(
            video_id,
            VideoStatus.FAILED,
            VideoStatus.PENDING,
            retry_count=retry_count + 1,
            error_code=None,
            error_message=None,
            completed_at=None,
            vidu_task_id=None,
        )
        if not reset:
            await self.ledger.refund_for_video(video_id)
            raise FotoReelException(
                MessageCode.VIDEO_NOT_RETRYABLE,
                status.HTTP_409_CONFLICT,
                {"video_id": str(video_id)},
            )

        self.logger.info(
            "video_retry_started", video_id=str(video_id), retry_count=retry_count + 1
        )
        result = await self.processor.process(video_id)
        return await self._outcome(video_id, result, new_balance)

    async def get_owned_video(self, user_id: UUID, video_id: UUID) -> VideoGeneration:
        video = await self.videos.get(video_id)
        if video is None:
            raise FotoReelException(MessageCode.VIDEO_NOT_FOUND, status.HTTP_404_NOT_FOUND)
        if video.user_id != user_id:
            self.logger.warning(
                "video_ownership_mismatch",
                video_id=str(video_id),
                user_id=str(user_id),
            )
            raise FotoReelException(MessageCode.FORBIDDEN, status.HTTP_403_FORBIDDEN)
        return video

    async def _reserve_atomic(
        self, user_id: UUID, prompt: str, image_base64: str | None
    ) -> tuple[UUID, int | None]:
        try:
            reservation = await self.ledger.create_video_and_consume_credit(
                user_id, prompt, image_base64
            )
        except LedgerError as e:
            raise self._ledger_failure(e)

        if not reservation.success or reservation.video_id is None:
            if reservation.error == INSUFFICIENT_CREDITS_ERROR:
                raise self._insufficient_credits(reservation.new_balance or 0)
            self.logger.error(
                "video_reservation_failed", user_id=str(user_id), error=reservation.error
            )
            raise FotoReelException(
                MessageCode.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR
            )
        return reservation.video_id, reservation.new_balance

    async def _reserve_with_failsafe(
        self, user_id: UUID, prompt: str, image_base64: str | None
    ) -> tuple[UUID, int | None]:
        """Create, consume, then verify the balance really moved.

        Used where the backend cannot create the video and consume the
        credit in one transaction.
        """
        video = await self.videos.create_pending(user_id, prompt, image_base64)
        video_id = video.id

        try:
            balance_before = await self.ledger.get_balance(user_id)
            consumed = await self.ledger.consume_credit_for_video(user_id, video_id)
        except LedgerError as e:
            await self.videos.mark_failed(
                video_id, VideoErrorCode.PROCESSING_ERROR, f"Credit consumption failed: {e}"
            )
            raise self._ledger_failure(e)

        if not consumed.success:
            insufficient = consumed.error == INSUFFICIENT_CREDITS_ERROR
            await self.videos.mark_failed(
                video_id,
                (
                    VideoErrorCode.INSUFFICIENT_CREDITS
                    if insufficient
                    else VideoErrorCode.PROCESSING_ERROR
                ),
                consumed.error or "Credit consumption failed",
            )
            if insufficient:
                raise self._insufficient_credits(consumed.new_balance or 0)
            raise FotoReelException(
                MessageCode.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        video = await self.videos.get(video_id)
        balance_after = await self.ledger.get_balance(user_id)
        if video is None or video.credits_used != 1 or balance_after >= balance_before:
            self.logger.critical(
                "video_consumption_unverified",
                video_id=str(video_id),
                user_id=str(user_id),
                balance_before=balance_before,
                balance_after=balance_after,
            )
            await self.processor.compensate(
                video_id,
                VideoErrorCode.CONSUMPTION_UNVERIFIED,
                "Credit consumption could not be verified",
            )
            raise FotoReelException(
                MessageCode.INTERNAL_ERROR,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                {"video_id": str(video_id)},
            )

        return video_id, balance_after

    async def _outcome(
        self, video_id: UUID, result: VideoProcessingResult, new_balance: int | None
    ) -> VideoGenerationOutcome:
        video = await self.videos.get(video_id)
        if not result.success:
            balance = result.new_balance
            if balance is None and video is not None:
                balance = await self._get_balance(video.user_id)
            raise FotoReelException(
                MessageCode.EXTERNAL_SERVICE_ERROR,
                status.HTTP_502_BAD_GATEWAY,
                {
                    "video_id": str(video_id),
                    "status": result.status,
                    "error_code": result.error_code,
                    "error_message": result.error,
                    "refunded": result.refunded,
                    "new_balance": balance,
                },
                message="Video generation failed",
            )
        return VideoGenerationOutcome(video=video, result=result, new_balance=new_balance)

    async def _get_balance(self, user_id: UUID) -> int:
        try:
            return await self.ledger.get_balance(user_id)
        except LedgerError as e:
            raise self._ledger_failure(e)

    def _insufficient_credits(self, balance: int) -> FotoReelException:
        return FotoReelException(
            MessageCode.INSUFFICIENT_CREDITS,
            status.HTTP_402_PAYMENT_REQUIRED,
            {"balance": balance, "required": VIDEO_CREDIT_COST},
        )

    def _ledger_failure(self, error: LedgerError) -> FotoReelException:
        self.logger.error("ledger_unavailable", error=str(error), transient=error.transient)
        return FotoReelException(
            MessageCode.INTERNAL_ERROR,
            (
                status.HTTP_503_SERVICE_UNAVAILABLE
                if error.transient
                else status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
        )
