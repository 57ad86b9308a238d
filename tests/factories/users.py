"""Factory for UserProfile models."""

from uuid import uuid4

import factory

from src.database.models import UserProfile
from .base import AsyncSQLAlchemyModelFactory


class UserProfileFactory(AsyncSQLAlchemyModelFactory[UserProfile]):
    class Meta:
        model = UserProfile

    id = factory.LazyFunction(uuid4)
    email = factory.Faker("email")
    full_name = factory.Faker("name")
    credits_balance = 0
