"""Insert-only audit trail of webhook deliveries."""

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from src.core.base import BaseService
from src.database.models import WebhookLog


class WebhookAuditLog(BaseService):
    async def record(
        self,
        payment_id: str | None,
        event_type: str,
        payload: Any,
        signature: str | None,
        is_valid: bool,
        error_message: str | None = None,
    ) -> None:
        """Write one row per delivery attempt.

        A failure to write is logged and not raised: the audit trail must
        never change the outcome of the notification it describes.
        """
        entry = WebhookLog(
            payment_id=payment_id[:100] if payment_id else None,
            event_type=(event_type or "unknown")[:50],
            payload=(
                payload
                if payload is None or isinstance(payload, (dict, list))
                else {"raw": str(payload)[:1000]}
            ),
            signature=signature[:500] if signature else None,
            is_valid=is_valid,
            error_message=error_message[:1000] if error_message else None,
            processed=is_valid and not error_message,
        )
        try:
            self.db.add(entry)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error(
                "webhook_audit_write_failed",
                payment_id=payment_id,
                event_type=event_type,
                error=str(e),
            )
