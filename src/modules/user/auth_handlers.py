"""Supabase access token authentication."""

from fastapi import status
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.constants import JWT_ALGORITHM
from src.api.core.exceptions.base import FotoReelException
from src.api.core.messages import MessageCode
from src.core.context import AuthenticatedUserContext
from src.modules.user.management import UserProfileService
from src.utils.logger import get_logger
from src.utils.settings.auth import AuthSettings

logger = get_logger(__name__)


def decode_access_token(token: str, settings: AuthSettings | None = None) -> dict:
    settings = settings or AuthSettings()
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=settings.SUPABASE_JWT_AUDIENCE,
            options={"leeway": settings.SUPABASE_JWT_LEEWAY_SECONDS},
        )
    except JWTError as e:
        logger.warning("jwt_decoding_failed", error=str(e))
        raise FotoReelException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Invalid or expired authentication token"},
        )

    if payload.get("role") == "anon" or not payload.get("sub"):
        raise FotoReelException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Anonymous access not permitted"},
        )
    return payload


async def handle_jwt_auth(db: AsyncSession, token: str) -> AuthenticatedUserContext:
    payload = decode_access_token(token)
    try:
        profile = await UserProfileService(db).get_or_create_from_claims(payload)
    except ValueError:
        raise FotoReelException(
            MessageCode.INVALID_TOKEN,
            status.HTTP_401_UNAUTHORIZED,
            {"description": "Token subject is not a valid user id"},
        )
    return AuthenticatedUserContext(user_id=profile.id, email=profile.email)
