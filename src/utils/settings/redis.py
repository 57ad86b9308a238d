"""Redis settings for the shared webhook rate-limit store."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    REDIS_URL: str = "redis://localhost:6379/0"
    # Webhooks must answer quickly even when Redis is unreachable
    REDIS_SOCKET_TIMEOUT_SECONDS: float = 2.0
    REDIS_MAX_CONNECTIONS: int = 20
