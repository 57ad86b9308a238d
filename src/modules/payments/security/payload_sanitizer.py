"""Whitelist-based cleaning of webhook payloads before they are logged or parsed."""

import copy
from typing import Any

ALLOWED_FIELDS = ("id", "type", "topic", "resource", "data", "action")


class PayloadTooLargeError(ValueError):
    pass


class PayloadSanitizer:
    def __init__(self, max_body_bytes: int = 10 * 1024, max_string_length: int = 500):
        self.max_body_bytes = max_body_bytes
        self.max_string_length = max_string_length

    def ensure_size(self, raw_body: bytes) -> None:
        """Reject oversized bodies before anything tries to parse them."""
        if len(raw_body) > self.max_body_bytes:
            raise PayloadTooLargeError(
                f"Webhook body of {len(raw_body)} bytes exceeds {self.max_body_bytes}"
            )

    def sanitize(self, payload: Any) -> Any:
        if not isinstance(payload, dict):
            return payload
        return {
            key: self._sanitize_value(payload[key])
            for key in ALLOWED_FIELDS
            if key in payload
        }

    def _sanitize_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return value[: self.max_string_length]
        if isinstance(value, (dict, list)):
            return copy.deepcopy(value)
        return value
