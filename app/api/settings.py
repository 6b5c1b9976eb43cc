"""Pricing settings API endpoint."""
import logging

from fastapi import APIRouter, Depends

from app.core.dependencies import get_pricing_config_provider
from app.services.ordering.models import CamelModel
from app.services.settings.provider import PricingConfigProvider

router = APIRouter()
logger = logging.getLogger(__name__)


class PricingSettingsResponse(CamelModel):
    """Delivery fees and VAT currently applied to new orders."""

    standard_delivery_fee: float
    express_delivery_fee: float
    vat_enabled: bool
    vat_rate: float


@router.get("/api/settings/pricing", response_model=PricingSettingsResponse)
async def get_pricing_settings(
    pricing: PricingConfigProvider = Depends(get_pricing_config_provider),
):
    """Get the pricing configuration the order endpoints will use."""
    config = await pricing.get_config()
    logger.debug(f"[PRICING CONFIG] Serving pricing settings - vat enabled: {config.vat_enabled}")
    return PricingSettingsResponse(
        standard_delivery_fee=float(config.standard_delivery_fee),
        express_delivery_fee=float(config.express_delivery_fee),
        vat_enabled=config.vat_enabled,
        vat_rate=float(config.vat_rate),
    )
