"""Authentication context model for typed user authentication."""

from dataclasses import dataclass
from uuid import UUID


@dataclass
class AuthenticatedUserContext:
    """The user behind a verified Supabase access token."""

    user_id: UUID
    email: str | None = None

    def __post_init__(self):
        if not self.user_id:
            raise ValueError("User id is required in authentication context")
