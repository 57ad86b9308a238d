"""Video generation model."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class VideoStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class VideoErrorCode(str, Enum):
    NSFW_CONTENT = "NSFW_CONTENT"
    VIDU_API_ERROR = "VIDU_API_ERROR"
    VIDU_ERROR = "VIDU_ERROR"
    PROCESSING_ERROR = "PROCESSING_ERROR"
    CONSUMPTION_UNVERIFIED = "CONSUMPTION_UNVERIFIED"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"


class VideoGeneration(Base):
    __tablename__ = "video_generations"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    translated_prompt: Mapped[str | None] = mapped_column(Text, nullable=True)
    input_image_base64: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[VideoStatus] = mapped_column(
        String, nullable=False, default=VideoStatus.PENDING.value
    )
    # 1 while a credit is held for this video, 0 once refunded or never consumed
    credits_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vidu_task_id: Mapped[str | None] = mapped_column(
        String, nullable=True, index=True
    )
    vidu_creation_id: Mapped[str | None] = mapped_column(String, nullable=True)
    video_url: Mapped[str | None] = mapped_column(String, nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String, nullable=True)
    video_duration_actual: Mapped[float | None] = mapped_column(Float, nullable=True)
    video_fps: Mapped[int | None] = mapped_column(Integer, nullable=True)
    vidu_full_response: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
