from uuid import UUID


def extract_user_data_from_jwt(payload: dict) -> dict:
    """Extract profile data from Supabase JWT claims."""
    user_metadata = payload.get("user_metadata") or {}

    name = user_metadata.get("full_name") or user_metadata.get("name")

    return {
        "user_id": UUID(str(payload.get("sub", ""))),
        "email": payload.get("email") or None,
        "full_name": name or None,
    }
