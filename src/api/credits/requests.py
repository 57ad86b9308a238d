"""Credits domain requests and responses."""

from src.api.core.messages import APIResponse, Paginated
from .models import (
    ApplyPurchaseModel,
    CreditBalanceModel,
    CreditPackageModel,
    CreditTransactionModel,
)


# Response Models
CreditBalanceResponse = APIResponse[CreditBalanceModel]
CreditTransactionsResponse = APIResponse[Paginated[CreditTransactionModel]]
CreditPackagesResponse = APIResponse[list[CreditPackageModel]]
ApplyPurchaseResponse = APIResponse[ApplyPurchaseModel]
