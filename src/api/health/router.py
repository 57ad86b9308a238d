"""Health check endpoints for monitoring."""

from fastapi import APIRouter

from src.api.core.dependencies import AsyncSessionDep, MercadoPagoSettingsDep
from src.modules.health.service import HealthService, OverallHealthStatus
from src.redis.client import get_redis_client

root_router = APIRouter()
router = APIRouter(prefix="/health", tags=["health"])


@root_router.get("/")
async def root():
    return {"service": "fotoreel-api", "status": "ok"}


@router.get("")
async def health_check(
    db: AsyncSessionDep, settings: MercadoPagoSettingsDep
) -> OverallHealthStatus:
    """Check the database, and Redis when it backs the webhook rate limiter."""
    redis_client = None
    if settings.WEBHOOK_RATE_LIMIT_BACKEND.lower() == "redis":
        redis_client = await get_redis_client()
    return await HealthService(db, redis_client).run_all_checks()


@router.get("/liveness")
async def liveness_check():
    """Simple liveness check - indicates if service is running."""
    return {"status": "alive", "service": "fotoreel-api"}
