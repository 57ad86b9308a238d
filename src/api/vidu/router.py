"""Vidu task callback endpoint."""

import json

from fastapi import APIRouter, Request

from src.api.core.dependencies import ViduCallbackHandlerDep
from src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/vidu", tags=["vidu"])


@router.post("/webhook")
async def receive_vidu_callback(
    request: Request, handler: ViduCallbackHandlerDep
) -> dict:
    """Record a Vidu task state change. Always answers 200."""
    try:
        body = json.loads(await request.body())
    except ValueError:
        logger.warning("vidu_callback_invalid_json")
        return {"received": True, "status": "invalid_json"}

    try:
        return await handler.handle(body)
    except Exception:
        await handler.db.rollback()
        logger.exception("vidu_callback_error")
        return {"received": True, "status": "error"}


@router.get("/webhook")
async def vidu_callback_status() -> dict:
    return {"status": "ok"}
