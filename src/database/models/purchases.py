"""Credit purchase model and payment status enum."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PaymentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class CreditPurchase(Base):
    __tablename__ = "credit_purchases"
    __table_args__ = (
        Index("ix_credit_purchases_user_status", "user_id", "payment_status"),
    )

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    package_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("credit_packages.id", ondelete="SET NULL"), nullable=True
    )
    package_name: Mapped[str | None] = mapped_column(String, nullable=True)
    credits_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_paid: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    payment_method: Mapped[str] = mapped_column(
        String, nullable=False, default="mercadopago"
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        String, nullable=False, default=PaymentStatus.PENDING.value
    )
    payment_id: Mapped[str | None] = mapped_column(String, nullable=True)
    preference_id: Mapped[str | None] = mapped_column(
        String, nullable=True, index=True
    )
    # Set once by the ledger when credits are granted
    applied_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_applied(self) -> bool:
        return self.applied_at is not None
