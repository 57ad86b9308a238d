"""MercadoPago payment routes: notifications, checkout and post-redirect confirmation."""

from fastapi import APIRouter, Request, status

from src.api.core.dependencies import (
    CheckoutServiceDep,
    CurrentUserDep,
    PaymentConfirmationServiceDep,
    PendingPaymentCheckerDep,
    WebhookIngestionServiceDep,
)
from src.api.core.exceptions.base import FotoReelException
from src.api.core.messages import APIResponse, MessageCode
from src.database.models import PaymentStatus
from src.modules.payments.checkout import (
    InvalidCreditsAmountError,
    PackageNotFoundError,
)
from src.modules.payments.confirmation import (
    PurchaseNotFoundError,
    PurchaseOwnershipError,
)
from src.modules.payments.gateway import GatewayError
from src.modules.payments.webhook import InboundWebhook
from src.utils.logger import get_client_ip, get_logger
from .models import (
    CheckPendingRequest,
    CreatePreferenceRequest,
    PendingCheckModel,
    PreferenceModel,
    ProcessedPaymentModel,
    ProcessPaymentRequest,
    WebhookAckModel,
)
from .requests import (
    PendingCheckResponse,
    PreferenceResponse,
    ProcessedPaymentResponse,
)

logger = get_logger(__name__)

# Mounted at the root: this is the notification_url given to the gateway
webhook_router = APIRouter(prefix="/payments", tags=["payments"])

router = APIRouter(prefix="/payments", tags=["payments"])


async def _ingest(request: Request, service: WebhookIngestionServiceDep) -> dict:
    webhook = InboundWebhook(
        method=request.method,
        raw_body=await request.body(),
        client_ip=get_client_ip(request),
        query_params=dict(request.query_params),
        signature=request.headers.get("x-signature"),
        request_id=request.headers.get("x-request-id"),
    )
    return await service.handle(webhook)


@webhook_router.post("/webhook", response_model=WebhookAckModel)
async def receive_payment_webhook(
    request: Request, service: WebhookIngestionServiceDep
) -> dict:
    """Receive a MercadoPago notification. Always answers 200."""
    return await _ingest(request, service)


@webhook_router.get("/webhook", response_model=WebhookAckModel)
async def receive_payment_webhook_get(
    request: Request, service: WebhookIngestionServiceDep
) -> dict:
    """IPN-style notification delivered as query parameters."""
    return await _ingest(request, service)


@router.post("/create-preference", response_model=PreferenceResponse)
async def create_preference(
    body: CreatePreferenceRequest,
    current_user: CurrentUserDep,
    checkout: CheckoutServiceDep,
) -> PreferenceResponse:
    """Create a pending purchase and the MercadoPago checkout to pay it."""
    try:
        session = await checkout.create_checkout(
            current_user.user_id, body.package_id, body.credits_amount
        )
    except PackageNotFoundError:
        raise FotoReelException(MessageCode.PACKAGE_NOT_FOUND, status.HTTP_404_NOT_FOUND)
    except InvalidCreditsAmountError as e:
        raise FotoReelException(
            MessageCode.INVALID_INPUT,
            status.HTTP_400_BAD_REQUEST,
            {"credits_amount": body.credits_amount},
            message=str(e),
        )
    except GatewayError as e:
        logger.error(
            "checkout_gateway_error",
            user_id=str(current_user.user_id),
            error=str(e),
            status_code=e.status_code,
        )
        raise FotoReelException(
            MessageCode.EXTERNAL_SERVICE_ERROR, status.HTTP_502_BAD_GATEWAY
        )

    return APIResponse.success(
        message_code=MessageCode.PREFERENCE_CREATED,
        data=PreferenceModel(
            purchase_id=session.purchase_id,
            preference_id=session.preference_id,
            init_point=session.init_point,
            sandbox_init_point=session.sandbox_init_point,
            credits_amount=session.credits_amount,
            price=session.price,
        ),
    )


@router.post("/check-pending", response_model=PendingCheckResponse)
async def check_pending_payments(
    current_user: CurrentUserDep,
    checker: PendingPaymentCheckerDep,
    body: CheckPendingRequest | None = None,
) -> PendingCheckResponse:
    """Reconcile the caller's pending purchases against the gateway."""
    if body is not None and body.user_id and body.user_id != current_user.user_id:
        logger.warning(
            "pending_check_user_mismatch",
            requested_user_id=str(body.user_id),
            user_id=str(current_user.user_id),
        )
        raise FotoReelException(MessageCode.FORBIDDEN, status.HTTP_403_FORBIDDEN)

    summary = await checker.check(current_user.user_id)
    return APIResponse.success(
        message_code=MessageCode.PENDING_PAYMENTS_CHECKED,
        message=summary.message,
        data=PendingCheckModel(
            processed=summary.processed,
            checked=summary.checked,
            total_pending=summary.total_pending,
            message=summary.message,
        ),
    )


@router.post("/process", response_model=ProcessedPaymentResponse)
async def process_payment(
    body: ProcessPaymentRequest,
    current_user: CurrentUserDep,
    confirmation: PaymentConfirmationServiceDep,
) -> ProcessedPaymentResponse:
    """Settle a purchase from the payment id MercadoPago redirected back with."""
    try:
        result = await confirmation.confirm(
            current_user.user_id, body.external_reference, body.payment_id
        )
    except PurchaseNotFoundError:
        raise FotoReelException(
            MessageCode.PURCHASE_NOT_FOUND, status.HTTP_404_NOT_FOUND
        )
    except PurchaseOwnershipError:
        raise FotoReelException(MessageCode.FORBIDDEN, status.HTTP_403_FORBIDDEN)

    if not result.success:
        if result.gateway_unavailable:
            raise FotoReelException(
                MessageCode.EXTERNAL_SERVICE_ERROR,
                status.HTTP_502_BAD_GATEWAY,
                {"retryable": True},
                message=result.message,
            )
        if result.status is None:
            raise FotoReelException(
                MessageCode.INVALID_INPUT,
                status.HTTP_400_BAD_REQUEST,
                {"payment_id": body.payment_id},
                message=result.message,
            )
        if result.status != PaymentStatus.APPROVED.value:
            raise FotoReelException(
                MessageCode.PURCHASE_NOT_APPROVED,
                status.HTTP_409_CONFLICT,
                {"payment_status": result.status},
                message=result.message,
            )
        raise FotoReelException(
            MessageCode.INTERNAL_ERROR,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            {"error": result.message},
        )

    return APIResponse.success(
        message_code=(
            MessageCode.CREDITS_ALREADY_APPLIED
            if result.already_applied
            else MessageCode.SUCCESS
        ),
        message=result.message,
        data=ProcessedPaymentModel(
            purchase_id=body.external_reference,
            status=result.status,
            credits_applied=result.credits_applied,
            already_applied=result.already_applied,
            new_balance=result.new_balance,
        ),
    )
