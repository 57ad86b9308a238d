"""Credits domain router."""

from fastapi import APIRouter, Query, status

from src.api.core.dependencies import AsyncSessionDep, CurrentUserDep, LedgerDep
from src.api.core.exceptions.base import FotoReelException
from src.api.core.messages import APIResponse, MessageCode, Paginated, PaginationInfo
from src.database.models import PaymentStatus
from src.modules.ledger import LedgerError
from src.modules.ledger.history import CreditHistoryService
from src.modules.payments.repository import PurchaseRepository
from src.utils.logger import get_logger
from .models import (
    ApplyPurchaseModel,
    ApplyPurchaseRequest,
    CreditBalanceModel,
    CreditPackageModel,
    CreditTransactionModel,
)
from .requests import (
    ApplyPurchaseResponse,
    CreditBalanceResponse,
    CreditPackagesResponse,
    CreditTransactionsResponse,
)

logger = get_logger(__name__)

router = APIRouter(
    prefix="/credits",
    tags=["credits"],
)


@router.get("/balance", response_model=CreditBalanceResponse)
async def get_credit_balance(
    current_user: CurrentUserDep,
    ledger: LedgerDep,
) -> CreditBalanceResponse:
    """Get the caller's current credit balance."""
    balance = await ledger.get_balance(current_user.user_id)
    return APIResponse.success(
        message_code=MessageCode.SUCCESS, data=CreditBalanceModel(balance=balance)
    )


@router.get("/transactions", response_model=CreditTransactionsResponse)
async def get_credit_transactions(
    db: AsyncSessionDep,
    current_user: CurrentUserDep,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> CreditTransactionsResponse:
    """Get the caller's credit history, newest first."""
    history = CreditHistoryService(db)
    records, total = await history.list_transactions(
        current_user.user_id, limit, offset
    )
    items = [CreditTransactionModel.model_validate(record) for record in records]
    paginated_data = Paginated[CreditTransactionModel](
        items=items,
        pagination=PaginationInfo(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + len(items) < total,
        ),
    )
    return APIResponse.success(message_code=MessageCode.SUCCESS, data=paginated_data)


@router.get("/packages", response_model=CreditPackagesResponse)
async def list_credit_packages(db: AsyncSessionDep) -> CreditPackagesResponse:
    """List the packages available for purchase."""
    packages = await CreditHistoryService(db).list_active_packages()
    return APIResponse.success(
        message_code=MessageCode.SUCCESS,
        data=[CreditPackageModel.model_validate(package) for package in packages],
    )


@router.post("/apply-purchase", response_model=ApplyPurchaseResponse)
async def apply_purchase(
    body: ApplyPurchaseRequest,
    db: AsyncSessionDep,
    current_user: CurrentUserDep,
    ledger: LedgerDep,
) -> ApplyPurchaseResponse:
    """Grant the credits of an approved purchase. Safe to call repeatedly."""
    purchase = await PurchaseRepository(db).get(body.purchase_id)
    if purchase is None:
        raise FotoReelException(
            MessageCode.PURCHASE_NOT_FOUND, status.HTTP_404_NOT_FOUND
        )
    if purchase.user_id != current_user.user_id:
        logger.warning(
            "purchase_ownership_mismatch",
            purchase_id=str(body.purchase_id),
            user_id=str(current_user.user_id),
        )
        raise FotoReelException(MessageCode.FORBIDDEN, status.HTTP_403_FORBIDDEN)
    if purchase.payment_status != PaymentStatus.APPROVED:
        raise FotoReelException(
            MessageCode.PURCHASE_NOT_APPROVED,
            status.HTTP_409_CONFLICT,
            {"payment_status": purchase.payment_status},
        )

    try:
        result = await ledger.apply_purchase(body.purchase_id)
    except LedgerError as e:
        logger.error(
            "apply_purchase_failed",
            purchase_id=str(body.purchase_id),
            error=str(e),
            transient=e.transient,
        )
        raise FotoReelException(
            MessageCode.INTERNAL_ERROR,
            (
                status.HTTP_503_SERVICE_UNAVAILABLE
                if e.transient
                else status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
        )

    if not result.success:
        raise FotoReelException(
            MessageCode.INTERNAL_ERROR,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"error": result.error},
        )

    return APIResponse.success(
        message_code=(
            MessageCode.CREDITS_ALREADY_APPLIED
            if result.already_applied
            else MessageCode.CREDITS_APPLIED
        ),
        data=ApplyPurchaseModel(
            purchase_id=body.purchase_id,
            new_balance=result.new_balance,
            already_applied=result.already_applied,
        ),
    )
