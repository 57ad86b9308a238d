"""Hands a reserved video to Vidu, compensating with a refund on failure.

A video reaches the processor pending, with its credit already consumed.
It leaves either processing (Vidu accepted the task) or failed with the
credit returned. A failure always gets exactly one refund attempt and the
outcome of that attempt is written into the error message.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.database.models import VideoErrorCode, VideoStatus
from src.modules.ledger import Ledger, LedgerError
from .repository import VideoRepository
from .vidu_client import ViduClient, ViduError
from .vision import VisionService


@dataclass
class VideoProcessingResult:
    success: bool
    video_id: UUID
    status: str
    error: str | None = None
    error_code: str | None = None
    refunded: bool = False
    new_balance: int | None = None


async def refund_video_credit(
    ledger: Ledger, video_id: UUID
) -> tuple[bool, int | None, str]:
    """Refund a video's credit and describe the outcome for its error message."""
    try:
        refund = await ledger.refund_for_video(video_id)
    except LedgerError as e:
        return False, None, f" [Refund failed: {e}]"
    if refund.success:
        return True, refund.new_balance, " [Credits refunded]"
    return False, None, f" [Refund failed: {refund.error}]"


class AsyncVideoProcessor(BaseService):
    def __init__(
        self,
        db: AsyncSession,
        ledger: Ledger,
        vidu: ViduClient,
        vision: VisionService,
    ):
        super().__init__(db)
        self.ledger = ledger
        self.vidu = vidu
        self.vision = vision
        self.videos = VideoRepository(db)

    async def process(self, video_id: UUID) -> VideoProcessingResult:
        video = await self.videos.get(video_id)
        if video is None:
            return VideoProcessingResult(
                success=False,
                video_id=video_id,
                status=VideoStatus.FAILED.value,
                error="Video record not found",
            )
        if video.status != VideoStatus.PENDING:
            self.logger.warning(
                "video_already_processed", video_id=str(video_id), status=video.status
            )
            return VideoProcessingResult(
                success=True, video_id=video_id, status=video.status
            )

        prompt = video.prompt
        image_base64 = video.input_image_base64

        try:
            refined_prompt = await self._refine_prompt(prompt, image_base64)

            try:
                task = await self.vidu.create_task(refined_prompt, image_base64)
            except ViduError as e:
                return await self.compensate(
                    video_id,
                    VideoErrorCode.VIDU_API_ERROR,
                    f"Vidu processing failed: {e}",
                )

            moved = await self.videos.transition(
                video_id,
                VideoStatus.PENDING,
                VideoStatus.PROCESSING,
                vidu_task_id=task.task_id,
                translated_prompt=refined_prompt,
                vidu_full_response=task.raw,
            )
            if not moved:
                current = await self.videos.get(video_id)
                status = current.status if current else VideoStatus.FAILED.value
                self.logger.warning(
                    "video_changed_during_processing",
                    video_id=str(video_id),
                    status=status,
                    task_id=task.task_id,
                )
                return VideoProcessingResult(
                    success=status != VideoStatus.FAILED,
                    video_id=video_id,
                    status=status,
                )
        except Exception as e:
            await self.db.rollback()
            self.logger.exception("video_processing_error", video_id=str(video_id))
            return await self.compensate(
                video_id,
                VideoErrorCode.PROCESSING_ERROR,
                f"Unexpected processing error: {type(e).__name__}: {e}",
            )

        self.logger.info(
            "video_processing_started", video_id=str(video_id), task_id=task.task_id
        )
        return VideoProcessingResult(
            success=True, video_id=video_id, status=VideoStatus.PROCESSING.value
        )

    async def compensate(
        self, video_id: UUID, error_code: VideoErrorCode, message: str
    ) -> VideoProcessingResult:
        """Refund the video's credit once, then mark it failed."""
        refunded, new_balance, suffix = await refund_video_credit(self.ledger, video_id)
        error_message = message + suffix
        try:
            await self.videos.mark_failed(video_id, error_code, error_message)
        except SQLAlchemyError:
            await self.db.rollback()
            self.logger.exception("video_mark_failed_error", video_id=str(video_id))

        log = self.logger.error if refunded else self.logger.critical
        log(
            "video_generation_failed",
            video_id=str(video_id),
            error_code=error_code.value,
            error_message=error_message,
            refunded=refunded,
        )
        return VideoProcessingResult(
            success=False,
            video_id=video_id,
            status=VideoStatus.FAILED.value,
            error=error_message,
            error_code=error_code.value,
            refunded=refunded,
            new_balance=new_balance,
        )

    async def _refine_prompt(self, prompt: str, image_base64: str | None) -> str:
        description = None
        if image_base64:
            description = await self.vision.describe_image(image_base64)
        return await self.vision.refine_prompt(prompt, description)
