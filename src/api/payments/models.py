from uuid import UUID

from pydantic import BaseModel, Field


class CreatePreferenceRequest(BaseModel):
    package_id: UUID
    # Required for custom packages only
    credits_amount: int | None = Field(default=None, gt=0)


class PreferenceModel(BaseModel):
    purchase_id: UUID
    preference_id: str
    init_point: str | None = None
    sandbox_init_point: str | None = None
    credits_amount: int
    price: float


class CheckPendingRequest(BaseModel):
    user_id: UUID | None = None


class PendingCheckModel(BaseModel):
    processed: int
    checked: int
    total_pending: int
    message: str


class WebhookAckModel(BaseModel):
    received: bool = True
    status: str | None = None


class ProcessPaymentRequest(BaseModel):
    payment_id: str = Field(min_length=1, max_length=64)
    external_reference: UUID


class ProcessedPaymentModel(BaseModel):
    purchase_id: UUID
    status: str | None = None
    credits_applied: bool
    already_applied: bool
    new_balance: int | None = None
