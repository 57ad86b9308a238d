"""User profile lookups and first-login provisioning."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError

from src.core.base import BaseService
from src.database.models import UserProfile
from src.modules.user.jwt_claims import extract_user_data_from_jwt


class UserProfileService(BaseService):
    async def get_profile(self, user_id: UUID) -> UserProfile | None:
        return await self.db.get(UserProfile, user_id)

    async def get_or_create_from_claims(self, payload: dict) -> UserProfile:
        """Return the caller's profile, creating it with a zero balance on first use."""
        data = extract_user_data_from_jwt(payload)
        profile = await self.get_profile(data["user_id"])
        if profile is not None:
            return profile

        profile = UserProfile(
            id=data["user_id"],
            email=data["email"],
            full_name=data["full_name"],
            credits_balance=0,
        )
        self.db.add(profile)
        try:
            await self.db.commit()
        except IntegrityError:
            # Concurrent first requests from the same user
            await self.db.rollback()
            profile = await self.db.get(
                UserProfile, data["user_id"], populate_existing=True
            )
            if profile is None:
                raise
            return profile

        self.logger.info("user_profile_created", user_id=str(data["user_id"]))
        return profile
