"""Centralized message codes and default messages for API responses."""

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel


class MessageCode(str, Enum):
    """Centralized message codes for API responses."""

    # Success codes
    SUCCESS = "SUCCESS"
    CREATED = "CREATED"

    # Authentication & Authorization
    AUTH_REQUIRED = "AUTH_REQUIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    FORBIDDEN = "FORBIDDEN"

    # Credits
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    CREDITS_APPLIED = "CREDITS_APPLIED"
    CREDITS_ALREADY_APPLIED = "CREDITS_ALREADY_APPLIED"

    # Purchases & payments
    PACKAGE_NOT_FOUND = "PACKAGE_NOT_FOUND"
    PURCHASE_NOT_FOUND = "PURCHASE_NOT_FOUND"
    PURCHASE_NOT_APPROVED = "PURCHASE_NOT_APPROVED"
    PREFERENCE_CREATED = "PREFERENCE_CREATED"
    PENDING_PAYMENTS_CHECKED = "PENDING_PAYMENTS_CHECKED"

    # Video generation
    VIDEO_STARTED = "VIDEO_STARTED"
    VIDEO_NOT_FOUND = "VIDEO_NOT_FOUND"
    VIDEO_NOT_RETRYABLE = "VIDEO_NOT_RETRYABLE"
    VIDEO_GENERATION_FAILED = "VIDEO_GENERATION_FAILED"
    NSFW_CONTENT = "NSFW_CONTENT"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"

    # Service Errors
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"


# Default messages for each message code
DEFAULT_MESSAGES = {
    # Success messages
    MessageCode.SUCCESS: "Operation completed successfully",
    MessageCode.CREATED: "Resource created successfully",
    # Authentication & Authorization
    MessageCode.AUTH_REQUIRED: "Authentication required",
    MessageCode.INVALID_TOKEN: "Invalid authentication token",
    MessageCode.FORBIDDEN: "Access denied",
    # Credits
    MessageCode.INSUFFICIENT_CREDITS: "Insufficient credits",
    MessageCode.CREDITS_APPLIED: "Credits applied successfully",
    MessageCode.CREDITS_ALREADY_APPLIED: "Credits were already applied for this purchase",
    # Purchases & payments
    MessageCode.PACKAGE_NOT_FOUND: "Credit package not found",
    MessageCode.PURCHASE_NOT_FOUND: "Purchase not found",
    MessageCode.PURCHASE_NOT_APPROVED: "Payment has not been approved yet",
    MessageCode.PREFERENCE_CREATED: "Checkout created successfully",
    MessageCode.PENDING_PAYMENTS_CHECKED: "Pending payments checked",
    # Video generation
    MessageCode.VIDEO_STARTED: "Video generation started",
    MessageCode.VIDEO_NOT_FOUND: "Video not found",
    MessageCode.VIDEO_NOT_RETRYABLE: "Video cannot be retried",
    MessageCode.VIDEO_GENERATION_FAILED: "Video generation failed",
    MessageCode.NSFW_CONTENT: "The image contains content that is not allowed",
    # Validation errors
    MessageCode.VALIDATION_ERROR: "Validation failed",
    MessageCode.INVALID_INPUT: "Invalid input provided",
    # Service Errors
    MessageCode.EXTERNAL_SERVICE_ERROR: "External service error",
    # Generic errors
    MessageCode.INTERNAL_ERROR: "Internal server error",
    MessageCode.INTERNAL_SERVER_ERROR: "Internal server error",
    MessageCode.BAD_REQUEST: "Bad request",
    MessageCode.NOT_FOUND: "Resource not found",
    MessageCode.PAYLOAD_TOO_LARGE: "Request payload too large",
}

T = TypeVar("T")


class PaginationInfo(BaseModel):
    """Common pagination information."""

    total: int
    limit: int
    offset: int
    has_more: bool


class Paginated(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""

    items: list[T]
    pagination: PaginationInfo


class APIResponse(BaseModel, Generic[T]):
    """Base API response model with consistent structure and proper typing."""

    message_code: MessageCode
    message: str
    data: T | None = None

    @classmethod
    def success(
        cls,
        message_code: MessageCode = MessageCode.SUCCESS,
        message: str | None = None,
        data: T | None = None,
    ) -> "APIResponse[T]":
        """Create a success response."""
        return cls(
            message_code=message_code,
            message=message or DEFAULT_MESSAGES.get(message_code, "Success"),
            data=data,
        )


def get_default_message(message_code: MessageCode) -> str:
    """Get default message for a message code."""
    return DEFAULT_MESSAGES.get(message_code, "Operation completed")
