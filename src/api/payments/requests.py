"""Payments domain requests and responses."""

from src.api.core.messages import APIResponse
from .models import PendingCheckModel, PreferenceModel, ProcessedPaymentModel


# Response Models
PreferenceResponse = APIResponse[PreferenceModel]
PendingCheckResponse = APIResponse[PendingCheckModel]
ProcessedPaymentResponse = APIResponse[ProcessedPaymentModel]
