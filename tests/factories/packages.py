"""Factories for credit packages."""

from decimal import Decimal
from uuid import uuid4

import factory

from src.database.models import CreditPackage, PackageType
from .base import AsyncSQLAlchemyModelFactory


class CreditPackageFactory(AsyncSQLAlchemyModelFactory[CreditPackage]):
    class Meta:
        model = CreditPackage

    id = factory.LazyFunction(uuid4)
    name = factory.Sequence(lambda n: f"Package {n}")
    description = "Credits for video generation"
    package_type = PackageType.FIXED.value
    credits_amount = 10
    price_mxn = Decimal("450.00")
    is_active = True


class CustomCreditPackageFactory(CreditPackageFactory):
    name = "Custom"
    package_type = PackageType.CUSTOM.value
    credits_amount = None
    price_mxn = None
    price_per_credit = Decimal("50.00")
    min_credits = 5
