"""Pricing configuration providers."""
import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional, Union

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.db.models import SiteSetting
from app.services.ordering.models import DeliveryMethod

logger = logging.getLogger(__name__)

STANDARD_FEE_KEY = "deliveryFee.standard"
EXPRESS_FEE_KEY = "deliveryFee.express"
VAT_ENABLED_KEY = "vat.enabled"
VAT_RATE_KEY = "vat.rate"


class PricingConfig(BaseModel):
    """Delivery fees and VAT settings in force for one request."""

    standard_delivery_fee: Decimal = Decimal("3.00")
    express_delivery_fee: Decimal = Decimal("5.00")
    vat_enabled: bool = False
    vat_rate: Decimal = Decimal("0")  # percent

    @classmethod
    def from_settings(cls, settings: Settings) -> "PricingConfig":
        return cls(
            standard_delivery_fee=settings.standard_delivery_fee,
            express_delivery_fee=settings.express_delivery_fee,
            vat_enabled=settings.vat_enabled,
            vat_rate=settings.vat_rate,
        )

    def delivery_fee_for(self, method: Union[DeliveryMethod, str]) -> Decimal:
        if DeliveryMethod(str(method).lower()) == DeliveryMethod.EXPRESS:
            return self.express_delivery_fee
        return self.standard_delivery_fee

    @property
    def effective_vat_rate(self) -> Decimal:
        return self.vat_rate if self.vat_enabled else Decimal("0")


class PricingConfigProvider(ABC):
    """Abstract source of pricing configuration."""

    @abstractmethod
    async def get_config(self) -> PricingConfig:
        """Get the pricing configuration for the current request."""
        pass


class StaticPricingConfigProvider(PricingConfigProvider):
    """Provider returning a fixed configuration."""

    def __init__(self, config: PricingConfig):
        self.config = config

    async def get_config(self) -> PricingConfig:
        return self.config


def _to_money(raw: Optional[str]) -> Optional[Decimal]:
    if raw is None:
        return None
    try:
        value = Decimal(raw)
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite() or value < 0:
        return None
    return value.quantize(Decimal("0.01"))


class SiteSettingPricingConfigProvider(PricingConfigProvider):
    """Provider reading admin-managed site settings, falling back to defaults."""

    def __init__(self, db: AsyncSession, defaults: PricingConfig):
        self.db = db
        self.defaults = defaults

    async def _load_settings(self) -> Dict[str, str]:
        result = await self.db.execute(
            select(SiteSetting).where(
                SiteSetting.key.in_(
                    [STANDARD_FEE_KEY, EXPRESS_FEE_KEY, VAT_ENABLED_KEY, VAT_RATE_KEY]
                )
            )
        )
        return {row.key: row.value for row in result.scalars().all()}

    async def get_config(self) -> PricingConfig:
        """Read site settings; any unreadable value keeps its default."""
        try:
            values = await self._load_settings()
        except Exception as e:
            logger.warning(
                f"[PRICING CONFIG] Could not read site settings, using defaults - "
                f"Error: {type(e).__name__}: {str(e)}"
            )
            await self.db.rollback()
            return self.defaults

        enabled_raw = values.get(VAT_ENABLED_KEY)
        standard_fee = _to_money(values.get(STANDARD_FEE_KEY))
        express_fee = _to_money(values.get(EXPRESS_FEE_KEY))
        vat_rate = _to_money(values.get(VAT_RATE_KEY))
        return PricingConfig(
            standard_delivery_fee=self.defaults.standard_delivery_fee if standard_fee is None else standard_fee,
            express_delivery_fee=self.defaults.express_delivery_fee if express_fee is None else express_fee,
            vat_enabled=self.defaults.vat_enabled if enabled_raw is None else enabled_raw == "true",
            vat_rate=self.defaults.vat_rate if vat_rate is None else vat_rate,
        )
