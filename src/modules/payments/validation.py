"""Format checks applied to gateway identifiers before they are trusted."""

import re

PAYMENT_ID_MIN_LENGTH = 6
PAYMENT_ID_MAX_LENGTH = 20
PAYMENT_ID_MIN_VALUE = 100_000
PAYMENT_ID_MAX_VALUE = 999_999_999_999

_PURCHASE_REFERENCE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_valid_payment_id(resource_id: str | None) -> bool:
    if not resource_id or not resource_id.isascii() or not resource_id.isdigit():
        return False
    if not PAYMENT_ID_MIN_LENGTH <= len(resource_id) <= PAYMENT_ID_MAX_LENGTH:
        return False
    return PAYMENT_ID_MIN_VALUE <= int(resource_id) <= PAYMENT_ID_MAX_VALUE


def is_valid_purchase_reference(reference: str | None) -> bool:
    return bool(reference) and bool(_PURCHASE_REFERENCE.match(reference))
