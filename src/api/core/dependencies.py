from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.core.exceptions.base import FotoReelException
from src.api.core.messages import MessageCode
from src.core.context import AuthenticatedUserContext
from src.modules.ledger import Ledger, build_ledger
from src.modules.payments.checkout import CheckoutService
from src.modules.payments.confirmation import PaymentConfirmationService
from src.modules.payments.gateway import PaymentGatewayClient, get_gateway_client
from src.modules.payments.pending_checker import PendingPaymentChecker
from src.modules.payments.processors import get_payment_processor
from src.modules.payments.security.ip_validator import IPValidator
from src.modules.payments.security.payload_sanitizer import PayloadSanitizer
from src.modules.payments.security.rate_limiter import (
    InMemoryRateLimitStore,
    RateLimitStore,
    RedisRateLimitStore,
    WebhookRateLimiter,
)
from src.modules.payments.webhook import WebhookIngestionService
from src.modules.user.auth_handlers import handle_jwt_auth
from src.modules.video.callbacks import ViduCallbackHandler
from src.modules.video.orchestrator import VideoGenerationOrchestrator
from src.modules.video.processor import AsyncVideoProcessor
from src.modules.video.vidu_client import ViduClient, get_vidu_client
from src.modules.video.vision import VisionService, get_vision_service
from src.redis.client import get_redis_client
from src.utils.settings.app import AppSettings
from src.utils.settings.mercadopago import MercadoPagoSettings

# Per-process counters, shared by every request served by this worker
_memory_rate_limit_store = InMemoryRateLimitStore()


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        yield session


AsyncSessionDep = Annotated[AsyncSession, Depends(get_db_session)]


async def get_current_user(
    request: Request, db: AsyncSessionDep
) -> AuthenticatedUserContext:
    """Authenticate the request from its ``Authorization: Bearer`` header."""
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise FotoReelException(MessageCode.AUTH_REQUIRED, status.HTTP_401_UNAUTHORIZED)
    return await handle_jwt_auth(db, token.strip())


def get_app_settings() -> AppSettings:
    return AppSettings()


def get_mercadopago_settings() -> MercadoPagoSettings:
    return MercadoPagoSettings()


AppSettingsDep = Annotated[AppSettings, Depends(get_app_settings)]
MercadoPagoSettingsDep = Annotated[
    MercadoPagoSettings, Depends(get_mercadopago_settings)
]
CurrentUserDep = Annotated[AuthenticatedUserContext, Depends(get_current_user)]


async def get_ledger(db: AsyncSessionDep) -> Ledger:
    return build_ledger(db)


async def get_gateway() -> PaymentGatewayClient:
    return get_gateway_client()


LedgerDep = Annotated[Ledger, Depends(get_ledger)]
GatewayDep = Annotated[PaymentGatewayClient, Depends(get_gateway)]
ViduClientDep = Annotated[ViduClient, Depends(get_vidu_client)]
VisionServiceDep = Annotated[VisionService, Depends(get_vision_service)]


async def get_rate_limit_store(settings: MercadoPagoSettingsDep) -> RateLimitStore:
    if settings.WEBHOOK_RATE_LIMIT_BACKEND.lower() == "redis":
        return RedisRateLimitStore(await get_redis_client())
    return _memory_rate_limit_store


async def get_webhook_rate_limiter(
    settings: MercadoPagoSettingsDep,
    store: Annotated[RateLimitStore, Depends(get_rate_limit_store)],
) -> WebhookRateLimiter:
    return WebhookRateLimiter(
        store,
        limit=settings.WEBHOOK_RATE_LIMIT,
        window_seconds=settings.WEBHOOK_RATE_LIMIT_WINDOW_SECONDS,
    )


async def get_ip_validator(
    settings: MercadoPagoSettingsDep, app_settings: AppSettingsDep
) -> IPValidator:
    return IPValidator(
        allowed_ranges=settings.ALLOWED_IP_RANGES,
        is_production=app_settings.is_production,
        enforce=settings.ENFORCE_IP_ALLOWLIST,
    )


async def get_webhook_ingestion_service(
    db: AsyncSessionDep,
    ledger: LedgerDep,
    gateway: GatewayDep,
    rate_limiter: Annotated[WebhookRateLimiter, Depends(get_webhook_rate_limiter)],
    ip_validator: Annotated[IPValidator, Depends(get_ip_validator)],
    settings: MercadoPagoSettingsDep,
    app_settings: AppSettingsDep,
) -> WebhookIngestionService:
    processor = get_payment_processor(
        db, gateway, ledger, app_settings.is_production, settings
    )
    sanitizer = PayloadSanitizer(
        max_body_bytes=settings.WEBHOOK_MAX_BODY_BYTES,
        max_string_length=settings.WEBHOOK_MAX_STRING_LENGTH,
    )
    return WebhookIngestionService(
        db,
        processor,
        rate_limiter,
        ip_validator,
        sanitizer,
        is_production=app_settings.is_production,
        settings=settings,
    )


async def get_checkout_service(
    db: AsyncSessionDep,
    gateway: GatewayDep,
    settings: MercadoPagoSettingsDep,
    app_settings: AppSettingsDep,
) -> CheckoutService:
    return CheckoutService(db, gateway, app_settings, settings)


async def get_pending_payment_checker(
    db: AsyncSessionDep,
    gateway: GatewayDep,
    ledger: LedgerDep,
    settings: MercadoPagoSettingsDep,
) -> PendingPaymentChecker:
    return PendingPaymentChecker(db, gateway, ledger, settings)


async def get_payment_confirmation_service(
    db: AsyncSessionDep,
    gateway: GatewayDep,
    ledger: LedgerDep,
    settings: MercadoPagoSettingsDep,
) -> PaymentConfirmationService:
    return PaymentConfirmationService(db, gateway, ledger, settings)


async def get_video_processor(
    db: AsyncSessionDep,
    ledger: LedgerDep,
    vidu: ViduClientDep,
    vision: VisionServiceDep,
) -> AsyncVideoProcessor:
    return AsyncVideoProcessor(db, ledger, vidu, vision)


async def get_video_orchestrator(
    db: AsyncSessionDep,
    ledger: LedgerDep,
    processor: Annotated[AsyncVideoProcessor, Depends(get_video_processor)],
    vision: VisionServiceDep,
) -> VideoGenerationOrchestrator:
    return VideoGenerationOrchestrator(db, ledger, processor, vision)


async def get_vidu_callback_handler(
    db: AsyncSessionDep, ledger: LedgerDep
) -> ViduCallbackHandler:
    return ViduCallbackHandler(db, ledger)


WebhookIngestionServiceDep = Annotated[
    WebhookIngestionService, Depends(get_webhook_ingestion_service)
]
CheckoutServiceDep = Annotated[CheckoutService, Depends(get_checkout_service)]
PendingPaymentCheckerDep = Annotated[
    PendingPaymentChecker, Depends(get_pending_payment_checker)
]
PaymentConfirmationServiceDep = Annotated[
    PaymentConfirmationService, Depends(get_payment_confirmation_service)
]
VideoOrchestratorDep = Annotated[
    VideoGenerationOrchestrator, Depends(get_video_orchestrator)
]
ViduCallbackHandlerDep = Annotated[
    ViduCallbackHandler, Depends(get_vidu_callback_handler)
]
