from fastapi import APIRouter

from src.api.credits.router import router as credits_router
from src.api.health.router import root_router, router as health_router
from src.api.payments.router import router as payments_router, webhook_router
from src.api.vidu.router import router as vidu_router
from src.api.videos.router import router as videos_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

# Include domain routers
v1_router.include_router(credits_router)
v1_router.include_router(payments_router)
v1_router.include_router(videos_router)

# Main API router
api_router = APIRouter()
api_router.include_router(root_router)
api_router.include_router(health_router)
# Gateway callbacks live outside /v1 so their URLs never change
api_router.include_router(webhook_router)
api_router.include_router(vidu_router)
api_router.include_router(v1_router)
