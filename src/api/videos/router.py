"""Video generation router."""

from uuid import UUID

from fastapi import APIRouter

from src.api.core.dependencies import CurrentUserDep, VideoOrchestratorDep
from src.api.core.messages import APIResponse, MessageCode
from src.modules.video.orchestrator import VideoGenerationOutcome
from .models import GenerateVideoRequest, VideoGenerationModel, VideoModel
from .requests import VideoGenerationResponse, VideoResponse

router = APIRouter(
    prefix="/videos",
    tags=["videos"],
)


def _generation_response(outcome: VideoGenerationOutcome) -> VideoGenerationResponse:
    return APIResponse.success(
        message_code=MessageCode.VIDEO_STARTED,
        data=VideoGenerationModel(
            video=VideoModel.model_validate(outcome.video),
            new_balance=outcome.new_balance,
        ),
    )


@router.post("/generate", response_model=VideoGenerationResponse)
async def generate_video(
    body: GenerateVideoRequest,
    current_user: CurrentUserDep,
    orchestrator: VideoOrchestratorDep,
) -> VideoGenerationResponse:
    """Spend one credit to turn a prompt (and optional image) into a video."""
    outcome = await orchestrator.generate(
        current_user.user_id, body.prompt, body.image_base64
    )
    return _generation_response(outcome)


@router.post("/{video_id}/retry", response_model=VideoGenerationResponse)
async def retry_video(
    video_id: UUID,
    current_user: CurrentUserDep,
    orchestrator: VideoOrchestratorDep,
) -> VideoGenerationResponse:
    """Retry a video that failed on the Vidu side."""
    outcome = await orchestrator.retry(current_user.user_id, video_id)
    return _generation_response(outcome)


@router.get("/{video_id}", response_model=VideoResponse)
async def get_video(
    video_id: UUID,
    current_user: CurrentUserDep,
    orchestrator: VideoOrchestratorDep,
) -> VideoResponse:
    video = await orchestrator.get_owned_video(current_user.user_id, video_id)
    return APIResponse.success(
        message_code=MessageCode.SUCCESS, data=VideoModel.model_validate(video)
    )
