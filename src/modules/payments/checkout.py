"""Checkout: pending purchase plus a MercadoPago preference to pay it."""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.base import BaseService
from src.database.models import CreditPackage, PackageType, PaymentStatus
from src.modules.payments.gateway import GatewayError, PaymentGatewayClient
from src.modules.payments.repository import PurchaseRepository
from src.utils.settings.app import AppSettings
from src.utils.settings.mercadopago import MercadoPagoSettings


class CheckoutError(Exception):
    pass


class PackageNotFoundError(CheckoutError):
    pass


class InvalidCreditsAmountError(CheckoutError):
    pass


@dataclass
class CheckoutSession:
    purchase_id: UUID
    preference_id: str
    init_point: str | None
    sandbox_init_point: str | None
    credits_amount: int
    price: float


class CheckoutService(BaseService):
    def __init__(
        self,
        db: AsyncSession,
        gateway: PaymentGatewayClient,
        app_settings: AppSettings | None = None,
        settings: MercadoPagoSettings | None = None,
    ):
        super().__init__(db)
        self.gateway = gateway
        self.app_settings = app_settings or AppSettings()
        self.settings = settings or MercadoPagoSettings()
        self.purchases = PurchaseRepository(db)

    async def create_checkout(
        self, user_id: UUID, package_id: UUID, credits_amount: int | None = None
    ) -> CheckoutSession:
        package = await self.db.get(CreditPackage, package_id)
        if package is None or not package.is_active:
            raise PackageNotFoundError(f"Package {package_id} not found")

        credits, price = self._price(package, credits_amount)
        purchase = await self.purchases.create_pending(
            user_id=user_id,
            credits_amount=credits,
            price_paid=price,
            package_id=package.id,
            package_name=package.name,
        )
        purchase_id = purchase.id

        preference_data = self._build_preference(
            package, purchase_id, user_id, credits, price
        )
        try:
            preference = await self.gateway.create_preference(preference_data)
        except GatewayError:
            # Never leave an unpayable purchase pending
            await self.purchases.settle(purchase_id, PaymentStatus.CANCELLED)
            raise

        preference_id = str(preference["id"])
        await self.purchases.set_preference_id(purchase_id, preference_id)
        self.logger.info(
            "checkout_created",
            purchase_id=str(purchase_id),
            preference_id=preference_id,
            credits=credits,
            price=float(price),
        )
        return CheckoutSession(
            purchase_id=purchase_id,
            preference_id=preference_id,
            init_point=preference.get("init_point"),
            sandbox_init_point=preference.get("sandbox_init_point"),
            credits_amount=credits,
            price=float(price),
        )

    def _price(
        self, package: CreditPackage, credits_amount: int | None
    ) -> tuple[int, Decimal]:
        if package.package_type == PackageType.FIXED:
            if package.credits_amount is None or package.price_mxn is None:
                raise InvalidCreditsAmountError("Fixed package is missing its price")
            return package.credits_amount, Decimal(package.price_mxn)

        min_credits = package.min_credits or 1
        if credits_amount is None or credits_amount < min_credits:
            raise InvalidCreditsAmountError(f"At least {min_credits} credits required")
        price_per_credit = Decimal(
            package.price_per_credit
            if package.price_per_credit is not None
            else str(self.settings.PRICE_PER_CREDIT)
        )
        return credits_amount, price_per_credit * credits_amount

    def _build_preference(
        self,
        package: CreditPackage,
        purchase_id: UUID,
        user_id: UUID,
        credits: int,
        price: Decimal,
    ) -> dict:
        app_url = self.app_settings.APP_URL.rstrip("/")
        preference = {
            "items": [
                {
                    "id": str(package.id),
                    "title": f"{package.name} - {credits} credits",
                    "description": package.description or "",
                    "quantity": 1,
                    "unit_price": float(price),
                    "currency_id": self.settings.CURRENCY_ID,
                }
            ],
            "back_urls": {
                "success": f"{app_url}/paquetes/success",
                "failure": f"{app_url}/paquetes/failure",
                "pending": f"{app_url}/paquetes/pending",
            },
            "external_reference": str(purchase_id),
            "metadata": {
                "purchase_id": str(purchase_id),
                "user_id": str(user_id),
                "credits_amount": credits,
            },
        }
        # Sandbox cannot reach localhost
        if self.app_settings.is_production:
            preference["notification_url"] = f"{app_url}/payments/webhook"
        return preference
