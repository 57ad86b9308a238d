from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DEBUG: bool = False
    ENVIRONMENT: str = "DEV"
    API_VERSION: str = "0.1.0"
    APP_URL: str = "http://localhost:3000"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "https://fotoreel.app",
        "https://www.fotoreel.app",
    ]

    # Security settings
    MAX_REQUEST_SIZE: int = 15 * 1024 * 1024  # base64 images inflate uploads
    # Reverse proxies in front of the app that append to X-Forwarded-For
    TRUSTED_PROXY_COUNT: int = 1

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.upper() == "PROD"

    def validate_prod(self) -> None:
        """Sanity checks for production environment."""
        if self.is_production:
            if not self.CORS_ORIGINS:
                raise ValueError("CORS_ORIGINS must be set in production")
            if not self.APP_URL.startswith("https://"):
                raise ValueError("APP_URL must use HTTPS in production")
