"""Handling of Vidu task callbacks.

Vidu reports each task state change to the callback URL. Completed and
failed are terminal, so a redelivered terminal callback changes nothing.
"""

import re
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.database.models import VideoErrorCode, VideoStatus
from src.modules.ledger import Ledger
from .processor import refund_video_credit
from .repository import VideoRepository
from .state import TERMINAL_STATUSES

_NSFW_ERROR = re.compile(r"nsfw|inappropriate|adult content", re.IGNORECASE)
IN_PROGRESS_STATES = frozenset({"created", "queueing", "processing"})


def acknowledge(status: str, **extra: Any) -> dict[str, Any]:
    return {"received": True, "status": status, **extra}


class ViduCallbackHandler(BaseService):
    def __init__(self, db: AsyncSession, ledger: Ledger):
        super().__init__(db)
        self.ledger = ledger
        self.videos = VideoRepository(db)

    async def handle(self, body: Any) -> dict[str, Any]:
        if not isinstance(body, dict):
            return acknowledge("invalid")

        task_id = body.get("id") or body.get("task_id")
        state = str(body.get("state") or "").lower()
        if not task_id:
            self.logger.warning("vidu_callback_missing_task_id", state=state)
            return acknowledge("invalid")

        video = await self.videos.get_by_task_id(str(task_id))
        if video is None:
            self.logger.warning("vidu_callback_unknown_task", task_id=str(task_id))
            return acknowledge("not_found")

        video_id = video.id
        current = VideoStatus(video.status)
        log = self.logger.bind(task_id=str(task_id), video_id=str(video_id), state=state)

        if state in IN_PROGRESS_STATES:
            return acknowledge("acknowledged", video_id=str(video_id))

        if state not in ("success", "failed"):
            log.warning("vidu_callback_unknown_state")
            return acknowledge("ignored", video_id=str(video_id))

        if current in TERMINAL_STATUSES:
            log.info("vidu_callback_redelivered", status=current.value)
            return acknowledge("ignored", video_id=str(video_id))

        if current == VideoStatus.PENDING:
            # Callback raced ahead of the processor recording the task
            await self.videos.transition(
                video_id, VideoStatus.PENDING, VideoStatus.PROCESSING
            )
            current = VideoStatus.PROCESSING

        if state == "success":
            return await self._complete(video_id, current, body, log)
        return await self._fail(video_id, body, log)

    async def _complete(self, video_id, current, body, log) -> dict[str, Any]:
        creations = body.get("creations") or []
        creation = creations[0] if creations and isinstance(creations[0], dict) else None
        if creation is None:
            log.error("vidu_callback_missing_creation")
            return acknowledge("invalid", video_id=str(video_id))

        video_meta = creation.get("video") or {}
        moved = await self.videos.transition(
            video_id,
            current,
            VideoStatus.COMPLETED,
            vidu_creation_id=str(creation.get("id")) if creation.get("id") else None,
            video_url=creation.get("url"),
            cover_url=creation.get("thumbnail_url") or creation.get("cover_url"),
            video_duration_actual=video_meta.get("duration") or 0,
            video_fps=video_meta.get("fps") or 0,
            vidu_full_response=body,
        )
        log.info("vidu_video_completed", moved=moved)
        return acknowledge(
            "completed" if moved else "ignored", video_id=str(video_id)
        )

    async def _fail(self, video_id, body, log) -> dict[str, Any]:
        error = str(body.get("err_code") or body.get("error") or "")
        is_nsfw = bool(_NSFW_ERROR.search(error))
        error_code = VideoErrorCode.NSFW_CONTENT if is_nsfw else VideoErrorCode.VIDU_ERROR
        message = (
            "Content not allowed: the image contains inappropriate content"
            if is_nsfw
            else f"Vidu generation failed: {error or 'unknown error'}"
        )

        marked = await self.videos.mark_failed(
            video_id, error_code, message, vidu_full_response=body
        )
        if not marked:
            log.info("vidu_callback_failure_already_recorded")
            return acknowledge("ignored", video_id=str(video_id))

        refunded, _, suffix = await refund_video_credit(self.ledger, video_id)
        video = await self.videos.get(video_id)
        if video is not None:
            video.error_message = message + suffix
            await self.db.commit()

        log_method = log.warning if refunded else log.critical
        log_method(
            "vidu_video_failed",
            error_code=error_code.value,
            error=error,
            refunded=refunded,
        )
        return acknowledge("failed", video_id=str(video_id), error=error or None)
