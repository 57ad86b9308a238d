"""Verification of the ``x-signature`` header sent with MercadoPago webhooks.

The header looks like ``ts=1704908010,v1=618c8534...``. ``v1`` is an
HMAC-SHA256, keyed with the webhook secret, of the manifest
``id:<data.id>;request-id:<x-request-id>;ts:<ts>;``. Parts whose value is
missing are left out of the manifest.
"""

import hashlib
import hmac
from dataclasses import dataclass


@dataclass
class SignatureVerificationResult:
    is_valid: bool
    timestamp: str | None = None
    error: str | None = None


def parse_signature_header(signature: str) -> dict[str, str]:
    parts: dict[str, str] = {}
    for part in signature.split(","):
        key, sep, value = part.strip().partition("=")
        if sep:
            parts[key.strip()] = value.strip()
    return parts


def build_manifest(data_id: str | None, request_id: str | None, ts: str) -> str:
    manifest = ""
    if data_id:
        # Alphanumeric ids are signed lowercased
        manifest += f"id:{data_id.lower()};"
    if request_id:
        manifest += f"request-id:{request_id};"
    manifest += f"ts:{ts};"
    return manifest


def verify_webhook_signature(
    signature: str | None,
    request_id: str | None,
    data_id: str | None,
    secret: str | None,
    is_production: bool,
) -> SignatureVerificationResult:
    if not secret:
        if is_production:
            return SignatureVerificationResult(
                is_valid=False, error="Webhook secret not configured"
            )
        return SignatureVerificationResult(
            is_valid=True, error="Allowed in development"
        )

    if not signature:
        return SignatureVerificationResult(is_valid=False, error="No signature provided")

    parts = parse_signature_header(signature)
    ts, received = parts.get("ts"), parts.get("v1")
    if not ts or not received:
        return SignatureVerificationResult(
            is_valid=False, error="Invalid signature format"
        )

    expected = hmac.new(
        secret.encode(),
        build_manifest(data_id, request_id, ts).encode(),
        hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(expected, received.lower()):
        return SignatureVerificationResult(
            is_valid=False, timestamp=ts, error="Signature mismatch"
        )
    return SignatureVerificationResult(is_valid=True, timestamp=ts)
