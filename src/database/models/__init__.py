"""Database models for FotoReel API."""

from .base import Base
from .packages import CreditPackage, PackageType
from .purchases import CreditPurchase, PaymentStatus
from .transactions import CreditTransaction, TransactionType
from .users import UserProfile
from .videos import VideoErrorCode, VideoGeneration, VideoStatus
from .webhook_logs import WebhookLog

__all__ = [
    # Base
    "Base",
    # Enums
    "PackageType",
    "PaymentStatus",
    "TransactionType",
    "VideoErrorCode",
    "VideoStatus",
    # Models
    "CreditPackage",
    "CreditPurchase",
    "CreditTransaction",
    "UserProfile",
    "VideoGeneration",
    "WebhookLog",
]
