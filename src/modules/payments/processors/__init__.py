from sqlalchemy.ext.asyncio import AsyncSession

from src.modules.ledger import Ledger
from src.modules.payments.gateway import PaymentGatewayClient
from src.utils.settings.mercadopago import MercadoPagoSettings
from .base import PaymentProcessor, ReconciliationResult
from .development import DevelopmentPaymentProcessor
from .production import ProductionPaymentProcessor


def get_payment_processor(
    db: AsyncSession,
    gateway: PaymentGatewayClient,
    ledger: Ledger,
    is_production: bool,
    settings: MercadoPagoSettings | None = None,
) -> PaymentProcessor:
    processor_class = (
        ProductionPaymentProcessor if is_production else DevelopmentPaymentProcessor
    )
    return processor_class(db, gateway, ledger, settings)


__all__ = [
    "DevelopmentPaymentProcessor",
    "PaymentProcessor",
    "ProductionPaymentProcessor",
    "ReconciliationResult",
    "get_payment_processor",
]
