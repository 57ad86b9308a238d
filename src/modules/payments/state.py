"""Payment status transitions for credit purchases.

``applied`` is not a status of its own: it is ``applied_at`` being set on an
approved purchase, which only the ledger does.
"""

from src.database.models import PaymentStatus


class InvalidTransitionError(ValueError):
    def __init__(self, current: str, target: str, kind: str = "payment"):
        self.current = current
        self.target = target
        super().__init__(f"Invalid {kind} transition {current} -> {target}")


PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset(
        {PaymentStatus.APPROVED, PaymentStatus.REJECTED, PaymentStatus.CANCELLED}
    ),
    PaymentStatus.APPROVED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REJECTED: frozenset(),
    PaymentStatus.CANCELLED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

# Gateway statuses that settle a purchase; anything else leaves it pending
GATEWAY_STATUS_MAP: dict[str, PaymentStatus] = {
    "approved": PaymentStatus.APPROVED,
    "rejected": PaymentStatus.REJECTED,
    "cancelled": PaymentStatus.CANCELLED,
}


def _value(status: str | PaymentStatus) -> str:
    return status.value if isinstance(status, PaymentStatus) else str(status)


def can_transition(current: str | PaymentStatus, target: str | PaymentStatus) -> bool:
    try:
        current_status = PaymentStatus(current)
        target_status = PaymentStatus(target)
    except ValueError:
        return False
    return target_status in PAYMENT_TRANSITIONS[current_status]


def transition_payment(
    current: str | PaymentStatus, target: str | PaymentStatus
) -> PaymentStatus:
    """Return the new status, or raise if the move is not a forward transition."""
    if not can_transition(current, target):
        raise InvalidTransitionError(_value(current), _value(target))
    return PaymentStatus(target)


def map_gateway_status(gateway_status: str | None) -> PaymentStatus | None:
    if not gateway_status:
        return None
    return GATEWAY_STATUS_MAP.get(gateway_status.strip().lower())
