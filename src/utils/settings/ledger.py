"""Credit ledger settings configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # "sqlalchemy" runs the ledger in-process, "stored_procedure" calls the SQL functions
    LEDGER_BACKEND: str = "sqlalchemy"
    USE_ATOMIC_VIDEO_RESERVATION: bool = True
