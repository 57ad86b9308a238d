"""Credit ledger contract.

Every balance mutation goes through a ``Ledger``. Implementations must give
at-most-once credit application per purchase, at-most-once consumption per
video and refunds that cannot be applied twice.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import UUID


class LedgerError(Exception):
    """Raised when the ledger backend itself fails.

    ``transient`` marks errors worth retrying (lost connection, timeout);
    everything else is surfaced to the caller as-is.
    """

    def __init__(self, message: str, transient: bool = False):
        self.transient = transient
        super().__init__(message)


@dataclass
class LedgerResult:
    success: bool
    new_balance: int | None = None
    error: str | None = None
    already_applied: bool = False


@dataclass
class VideoReservation:
    success: bool
    video_id: UUID | None = None
    new_balance: int | None = None
    error: str | None = None


class Ledger(ABC):
    @abstractmethod
    async def apply_purchase(self, purchase_id: UUID) -> LedgerResult:
        """Grant a purchase's credits; no-op with ``already_applied`` on replay."""

    @abstractmethod
    async def consume_credit_for_video(
        self, user_id: UUID, video_id: UUID
    ) -> LedgerResult:
        """Debit one credit for a video that has not consumed one yet."""

    @abstractmethod
    async def refund_for_video(self, video_id: UUID) -> LedgerResult:
        """Give back exactly what was consumed for a video, at most once."""

    @abstractmethod
    async def create_video_and_consume_credit(
        self, user_id: UUID, prompt: str, image_base64: str | None
    ) -> VideoReservation:
        """Create a pending video with its credit already consumed."""

    @abstractmethod
    async def get_balance(self, user_id: UUID) -> int:
        ...


def ledger_error_from(exc: Exception) -> LedgerError:
    """Wrap a database error, flagging connection-level failures as transient."""
    from sqlalchemy.exc import DBAPIError, OperationalError
    from sqlalchemy.exc import TimeoutError as PoolTimeoutError

    transient = isinstance(exc, (OperationalError, PoolTimeoutError, TimeoutError)) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    )
    return LedgerError(f"{type(exc).__name__}: {exc}", transient=transient)
