"""MercadoPago settings configuration."""

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class MercadoPagoSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    MERCADOPAGO_ACCESS_TOKEN: SecretStr = SecretStr("TEST-access-token")
    MERCADOPAGO_WEBHOOK_SECRET: SecretStr | None = None

    # Timeouts (seconds)
    GATEWAY_TIMEOUT_SECONDS: float = 8.0
    WEBHOOK_REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Payments can 404 for a few seconds after creation
    PAYMENT_FETCH_MAX_ATTEMPTS: int = 3
    PAYMENT_FETCH_BACKOFF_SECONDS: float = 2.0

    # Webhook guards
    WEBHOOK_RATE_LIMIT: int = 60
    WEBHOOK_RATE_LIMIT_WINDOW_SECONDS: int = 60
    WEBHOOK_RATE_LIMIT_BACKEND: str = "memory"
    WEBHOOK_MAX_BODY_BYTES: int = 10 * 1024
    WEBHOOK_MAX_STRING_LENGTH: int = 500
    ENFORCE_IP_ALLOWLIST: bool = False
    ALLOWED_IP_RANGES: list[str] = [
        "179.32.192.0/19",
        "190.217.252.0/24",
        "190.217.253.0/24",
        "190.217.254.0/24",
    ]

    # Pricing
    STRICT_AMOUNT_VALIDATION: bool = False
    PRICE_PER_CREDIT: float = 50.0
    CURRENCY_ID: str = "MXN"

    PENDING_CHECK_LIMIT: int = 10
    DEV_TEST_USER_ID: str | None = None
