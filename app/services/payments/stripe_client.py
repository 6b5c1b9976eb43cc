"""Stripe payment authority client."""
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.services.payments.base import ChargeAuthority
from app.services.payments.http import get_json

logger = logging.getLogger(__name__)


class StripePaymentAuthority(ChargeAuthority):
    """Read-only client for the Stripe REST API."""

    name = "stripe"

    def __init__(
        self,
        secret_key: Optional[str],
        api_base: str = "https://api.stripe.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await get_json(
            "Stripe",
            self.api_base,
            self.secret_key,
            path,
            params=params,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def retrieve_payment_intent(self, reference: str) -> Optional[Dict[str, Any]]:
        logger.debug(f"[STRIPE] Retrieving payment intent {reference}")
        return await self._get(f"/payment_intents/{reference}")

    async def list_charges(self, reference: str, limit: int = 1) -> List[Dict[str, Any]]:
        logger.debug(f"[STRIPE] Listing charges for payment intent {reference}")
        data = await self._get("/charges", params={"payment_intent": reference, "limit": limit})
        charges = data.get("data")
        return [c for c in charges if isinstance(c, dict)] if isinstance(charges, list) else []

    async def retrieve_charge(self, charge_id: str) -> Optional[Dict[str, Any]]:
        logger.debug(f"[STRIPE] Retrieving charge {charge_id}")
        return await self._get(f"/charges/{charge_id}")
