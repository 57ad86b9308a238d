"""Test factories for FotoReel API models."""

from .base import AsyncSQLAlchemyModelFactory
from .packages import CreditPackageFactory, CustomCreditPackageFactory
from .purchases import CreditPurchaseFactory
from .users import UserProfileFactory
from .videos import VideoGenerationFactory

__all__ = [
    "AsyncSQLAlchemyModelFactory",
    "CreditPackageFactory",
    "CreditPurchaseFactory",
    "CustomCreditPackageFactory",
    "UserProfileFactory",
    "VideoGenerationFactory",
]
