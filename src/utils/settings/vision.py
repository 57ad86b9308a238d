"""OpenAI vision and prompt settings configuration."""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class VisionSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    OPENAI_API_KEY: SecretStr = SecretStr("")
    OPENAI_VISION_MODEL: str = "gpt-4o"
    OPENAI_PROMPT_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT_SECONDS: float = 20.0
    NSFW_CHECK_ENABLED: bool = True
