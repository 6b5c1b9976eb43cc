"""Paystack payment authority client."""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from app.core.errors import PaymentAuthorityError
from app.services.payments.base import TransactionAuthority
from app.services.payments.http import get_json

logger = logging.getLogger(__name__)


class PaystackPaymentAuthority(TransactionAuthority):
    """Read-only client for the Paystack transaction API."""

    name = "paystack"

    def __init__(
        self,
        secret_key: Optional[str],
        api_base: str = "https://api.paystack.co",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def verify_transaction(self, reference: str) -> Optional[Dict[str, Any]]:
        """
        Verify a transaction by reference.

        Paystack wraps every answer as ``{"status": bool, "message": str, "data": {...}}``;
        a false ``status`` is an error even on HTTP 200.
        """
        logger.debug(f"[PAYSTACK] Verifying transaction {reference}")
        path = f"/transaction/verify/{quote(reference, safe='')}"
        body = await get_json(
            "Paystack",
            self.api_base,
            self.secret_key,
            path,
            timeout=self.timeout,
            transport=self.transport,
        )
        if not body.get("status"):
            raise PaymentAuthorityError(
                f"Paystack rejected verification of {reference}: "
                f"{body.get('message') or 'unknown error'}"
            )
        data = body.get("data")
        return data if isinstance(data, dict) else None
