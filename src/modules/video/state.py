"""Status transitions for video generations."""

from src.database.models import VideoStatus
from src.modules.payments.state import InvalidTransitionError

VIDEO_TRANSITIONS: dict[VideoStatus, frozenset[VideoStatus]] = {
    VideoStatus.PENDING: frozenset({VideoStatus.PROCESSING, VideoStatus.FAILED}),
    VideoStatus.PROCESSING: frozenset({VideoStatus.COMPLETED, VideoStatus.FAILED}),
    VideoStatus.COMPLETED: frozenset(),
    # Only an operator retry leaves the failed state
    VideoStatus.FAILED: frozenset({VideoStatus.PENDING}),
}

TERMINAL_STATUSES = frozenset({VideoStatus.COMPLETED, VideoStatus.FAILED})


def _value(status: str | VideoStatus) -> str:
    return status.value if isinstance(status, VideoStatus) else str(status)


def can_transition_video(current: str | VideoStatus, target: str | VideoStatus) -> bool:
    try:
        current_status = VideoStatus(current)
        target_status = VideoStatus(target)
    except ValueError:
        return False
    return target_status in VIDEO_TRANSITIONS[current_status]


def transition_video(
    current: str | VideoStatus, target: str | VideoStatus
) -> VideoStatus:
    if not can_transition_video(current, target):
        raise InvalidTransitionError(_value(current), _value(target), kind="video")
    return VideoStatus(target)
