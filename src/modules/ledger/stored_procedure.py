"""Ledger backed by the Postgres functions that own the balance arithmetic."""

import json
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.core.base import BaseService
from .base import Ledger, LedgerResult, VideoReservation, ledger_error_from


class StoredProcedureLedger(BaseService, Ledger):
    async def apply_purchase(self, purchase_id: UUID) -> LedgerResult:
        data = await self._call(
            "apply_credit_purchase_secure", p_purchase_id=purchase_id
        )
        return self._to_result(data)

    async def consume_credit_for_video(
        self, user_id: UUID, video_id: UUID
    ) -> LedgerResult:
        data = await self._call(
            "consume_credit_for_video_secure", p_user_id=user_id, p_video_id=video_id
        )
        return self._to_result(data)

    async def refund_for_video(self, video_id: UUID) -> LedgerResult:
        data = await self._call("refund_credits_for_vidu_failure", p_video_id=video_id)
        return self._to_result(data)

    async def create_video_and_consume_credit(
        self, user_id: UUID, prompt: str, image_base64: str | None
    ) -> VideoReservation:
        data = await self._call(
            "create_video_and_consume_credits_atomic",
            p_user_id=user_id,
            p_prompt=prompt,
            p_image_base64=image_base64,
        )
        video_id = data.get("video_id") or (data.get("video_data") or {}).get("id")
        return VideoReservation(
            success=bool(data.get("success")),
            video_id=UUID(str(video_id)) if video_id else None,
            new_balance=data.get("new_balance"),
            error=data.get("error"),
        )

    async def get_balance(self, user_id: UUID) -> int:
        try:
            balance = await self.db.scalar(
                text("SELECT get_user_balance(:p_user_id)"), {"p_user_id": user_id}
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ledger_error_from(e) from e
        return int(balance or 0)

    async def _call(self, function: str, **params: Any) -> dict:
        placeholders = ", ".join(f"{name} => :{name}" for name in params)
        try:
            raw = await self.db.scalar(
                text(f"SELECT {function}({placeholders})"), params
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("ledger_rpc_failed", function=function, error=str(e))
            raise ledger_error_from(e) from e

        if isinstance(raw, str):
            raw = json.loads(raw)
        if not isinstance(raw, dict):
            self.logger.error(
                "ledger_rpc_unexpected_result", function=function, result=repr(raw)
            )
            return {"success": False, "error": "Unexpected ledger response"}
        return raw

    @staticmethod
    def _to_result(data: dict) -> LedgerResult:
        return LedgerResult(
            success=bool(data.get("success")),
            new_balance=data.get("new_balance"),
            error=data.get("error"),
            already_applied=bool(data.get("already_applied", False)),
        )
