"""Video domain requests and responses."""

from src.api.core.messages import APIResponse
from .models import VideoGenerationModel, VideoModel


# Response Models
VideoGenerationResponse = APIResponse[VideoGenerationModel]
VideoResponse = APIResponse[VideoModel]
