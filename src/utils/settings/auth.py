from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    """Verification of Supabase Auth access tokens."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    SUPABASE_JWT_SECRET: str = ""
    SUPABASE_JWT_AUDIENCE: str = "authenticated"
    # Clock skew tolerated on exp/iat, in seconds
    SUPABASE_JWT_LEEWAY_SECONDS: int = 30
