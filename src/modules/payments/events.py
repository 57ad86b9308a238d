"""Normalization of inbound MercadoPago notifications.

The gateway delivers the same information in several shapes: IPN style
(``topic`` + ``resource`` URL), webhook style (``type`` + ``data.id``),
``action`` strings such as ``payment.updated``, and bare GET requests that
carry everything in the query string.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

_NUMERIC = re.compile(r"^\d+$")
# Last numeric path segment, followed by a query string or the end of input
_NUMERIC_SEGMENT = re.compile(r"/(\d+)(?:\?|$)")


class WebhookEventType(str, Enum):
    PAYMENT = "payment"
    MERCHANT_ORDER = "merchant_order"
    UNKNOWN = "unknown"


@dataclass
class WebhookEvent:
    type: WebhookEventType
    resource_id: str
    data: dict[str, Any] = field(default_factory=dict)


def extract_id_from_url(value: Any) -> str:
    """Return the numeric id in a resource URL, or the input unchanged."""
    if value is None:
        return "unknown"
    text = str(value).strip()
    if not text:
        return "unknown"
    if _NUMERIC.match(text):
        return text
    match = _NUMERIC_SEGMENT.search(text)
    return match.group(1) if match else text


def build_body_from_query_params(params: Mapping[str, str]) -> dict[str, Any]:
    """Rebuild a notification body from GET query parameters."""
    body: dict[str, Any] = {}

    data_id = params.get("data.id")
    if data_id:
        body["id"] = data_id
        body["data"] = {"id": data_id}
    if params.get("type"):
        body["type"] = params["type"]
    if params.get("topic"):
        body["topic"] = params["topic"]
    resource = params.get("id")
    if resource:
        body["resource"] = resource
        body["id"] = extract_id_from_url(resource)

    return body


def is_valid_webhook_structure(body: Any) -> bool:
    if not isinstance(body, dict):
        return False
    if any(body.get(key) for key in ("id", "resource", "type", "topic", "action")):
        return True
    data = body.get("data")
    return isinstance(data, dict) and bool(data.get("id"))


def _is_topic(body: dict[str, Any], topic: str) -> bool:
    if body.get("topic") == topic or body.get("type") == topic:
        return True
    action = body.get("action")
    return isinstance(action, str) and (
        action == topic or action.startswith(f"{topic}.")
    )


def parse_webhook_event(body: Any) -> WebhookEvent:
    if not isinstance(body, dict):
        return WebhookEvent(type=WebhookEventType.UNKNOWN, resource_id="invalid_body")

    resource_id = extract_id_from_url(body.get("resource") or body.get("id"))

    if _is_topic(body, WebhookEventType.PAYMENT.value):
        data = body.get("data")
        data_id = data.get("id") if isinstance(data, dict) else None
        return WebhookEvent(
            type=WebhookEventType.PAYMENT,
            resource_id=str(data_id) if data_id else resource_id,
            data=body,
        )

    if _is_topic(body, WebhookEventType.MERCHANT_ORDER.value):
        return WebhookEvent(
            type=WebhookEventType.MERCHANT_ORDER,
            resource_id=resource_id,
            data=body,
        )

    bare_id = body.get("id")
    if isinstance(bare_id, (int, str)) and not isinstance(bare_id, bool):
        if _NUMERIC.match(str(bare_id).strip()):
            return WebhookEvent(
                type=WebhookEventType.PAYMENT,
                resource_id=str(bare_id).strip(),
                data=body,
            )

    return WebhookEvent(
        type=WebhookEventType.UNKNOWN, resource_id=resource_id, data=body
    )
