"""Credit package catalogue."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class PackageType(str, Enum):
    FIXED = "fixed"
    CUSTOM = "custom"


class CreditPackage(Base):
    __tablename__ = "credit_packages"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    package_type: Mapped[PackageType] = mapped_column(
        String, nullable=False, default=PackageType.FIXED.value
    )
    # Fixed packages
    credits_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price_mxn: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    # Custom packages
    price_per_credit: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True
    )
    min_credits: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
