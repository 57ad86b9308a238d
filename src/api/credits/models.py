from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel


class CreditBalanceModel(BaseModel):
    """Current spendable credits."""

    balance: int = 0


class CreditTransactionModel(BaseModel):
    """One entry of the append-only credit log."""

    id: UUID
    amount: int
    balance_after: int
    transaction_type: str
    purchase_id: UUID | None = None
    video_id: UUID | None = None
    description: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CreditPackageModel(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    package_type: str
    credits_amount: int | None = None
    price_mxn: Decimal | None = None
    price_per_credit: Decimal | None = None
    min_credits: int | None = None

    model_config = {"from_attributes": True}


class ApplyPurchaseRequest(BaseModel):
    purchase_id: UUID


class ApplyPurchaseModel(BaseModel):
    purchase_id: UUID
    new_balance: int | None = None
    already_applied: bool = False
