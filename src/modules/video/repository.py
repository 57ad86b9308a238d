"""Data access for video generations."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import select, update

from src.core.base import BaseService
from src.database.models import VideoErrorCode, VideoGeneration, VideoStatus
from .state import TERMINAL_STATUSES, transition_video


class VideoRepository(BaseService):
    async def get(self, video_id: UUID) -> VideoGeneration | None:
        return await self.db.get(VideoGeneration, video_id, populate_existing=True)

    async def get_by_task_id(self, task_id: str) -> VideoGeneration | None:
        return await self.db.scalar(
            select(VideoGeneration)
            .where(VideoGeneration.vidu_task_id == task_id)
            .execution_options(populate_existing=True)
        )

    async def create_pending(
        self, user_id: UUID, prompt: str, image_base64: str | None
    ) -> VideoGeneration:
        video = VideoGeneration(
            user_id=user_id,
            prompt=prompt,
            input_image_base64=image_base64,
            status=VideoStatus.PENDING.value,
            credits_used=0,
        )
        self.db.add(video)
        await self.db.commit()
        return video

    async def create_failed(
        self,
        user_id: UUID,
        prompt: str,
        image_base64: str | None,
        error_code: VideoErrorCode,
        error_message: str,
    ) -> VideoGeneration:
        """Record a request rejected before any credit was consumed."""
        video = VideoGeneration(
            user_id=user_id,
            prompt=prompt,
            input_image_base64=image_base64,
            status=VideoStatus.FAILED.value,
            credits_used=0,
            error_code=error_code.value,
            error_message=error_message,
            completed_at=datetime.now(timezone.utc),
        )
        self.db.add(video)
        await self.db.commit()
        return video

    async def transition(
        self,
        video_id: UUID,
        current: VideoStatus | str,
        target: VideoStatus,
        **values: Any,
    ) -> bool:
        """Move a video from ``current`` to ``target``.

        Raises ``InvalidTransitionError`` for moves the state machine forbids.
        Returns False when the row is no longer in ``current``.
        """
        new_status = transition_video(current, target)
        values["status"] = new_status.value
        if new_status in TERMINAL_STATUSES:
            values.setdefault("completed_at", datetime.now(timezone.utc))

        result = await self.db.execute(
            update(VideoGeneration)
            .where(
                VideoGeneration.id == video_id,
                VideoGeneration.status == VideoStatus(current).value,
            )
            .values(**values)
        )
        await self.db.commit()
        moved = result.rowcount == 1
        self.logger.info(
            "video_transitioned" if moved else "video_transition_skipped",
            video_id=str(video_id),
            current=VideoStatus(current).value,
            target=new_status.value,
        )
        return moved

    async def mark_failed(
        self,
        video_id: UUID,
        error_code: VideoErrorCode,
        error_message: str,
        **values: Any,
    ) -> bool:
        """Fail a video from whichever non-terminal status it is in."""
        video = await self.get(video_id)
        if video is None or VideoStatus(video.status) in TERMINAL_STATUSES:
            return False
        return await self.transition(
            video_id,
            video.status,
            VideoStatus.FAILED,
            error_code=error_code.value,
            error_message=error_message,
            **values,
        )
