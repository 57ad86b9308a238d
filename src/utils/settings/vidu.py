"""Vidu video API settings configuration."""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ViduSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    VIDU_API_URL: str = "https://api.vidu.com/ent/v2/img2video"
    VIDU_API_KEY: SecretStr = SecretStr("")
    VIDU_MODEL: str = "viduq1"
    VIDU_DURATION: int = 5
    VIDU_RESOLUTION: str = "1080p"
    VIDU_TIMEOUT_SECONDS: int = 30
    VIDU_CALLBACK_URL: str = "http://localhost:8010/vidu/webhook"
