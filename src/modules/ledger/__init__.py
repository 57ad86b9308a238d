from .base import Ledger, LedgerError, LedgerResult, VideoReservation
from .sqlalchemy_ledger import SQLAlchemyLedger
from .stored_procedure import StoredProcedureLedger

__all__ = [
    "Ledger",
    "LedgerError",
    "LedgerResult",
    "SQLAlchemyLedger",
    "StoredProcedureLedger",
    "VideoReservation",
    "build_ledger",
]


def build_ledger(db, backend: str | None = None) -> Ledger:
    """Return the ledger implementation selected by ``LEDGER_BACKEND``."""
    from src.utils.settings.ledger import LedgerSettings

    backend = (backend or LedgerSettings().LEDGER_BACKEND).lower()
    if backend == "stored_procedure":
        return StoredProcedureLedger(db)
    if backend == "sqlalchemy":
        return SQLAlchemyLedger(db)
    raise ValueError(f"Unknown ledger backend: {backend}")
