from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.api.core.constants import MAX_PROMPT_LENGTH


class GenerateVideoRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=MAX_PROMPT_LENGTH)
    # Raw base64 or a data: URL
    image_base64: str | None = None


class VideoModel(BaseModel):
    id: UUID
    status: str
    prompt: str
    translated_prompt: str | None = None
    vidu_task_id: str | None = None
    video_url: str | None = None
    cover_url: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    retry_count: int = 0
    max_retries: int = 1
    created_at: datetime | None = None
    completed_at: datetime | None = None

    model_config = {"from_attributes": True}


class VideoGenerationModel(BaseModel):
    video: VideoModel
    new_balance: int | None = None
