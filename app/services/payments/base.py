"""Payment authority interfaces."""
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

# Terminal non-paid states: Stripe intents, then Paystack transactions
UNPAID_STATUSES = frozenset(
    {"canceled", "requires_payment_method", "failed", "abandoned", "reversed"}
)


class ReconciledPayment(BaseModel):
    """Payment facts gathered from the payment authority, best effort."""

    reference: str
    amount: Decimal
    currency: str
    receipt_url: Optional[str] = None
    status: Optional[str] = None  # authority's own status string, when known
    paid_at: Optional[datetime] = None
    gateway: str = "stripe"
    gateway_response: Dict[str, Any] = {}
    complete: bool = False  # every lookup step succeeded

    @property
    def definitely_unpaid(self) -> bool:
        """True only when the authority positively reported a non-paid state."""
        return self.status in UNPAID_STATUSES


class PaymentAuthority(ABC):
    """Root of the external payment authority clients.

    Every lookup may return None or a partial mapping; callers treat the data
    as untrusted and incomplete.
    """

    name: str = "payment"


class ChargeAuthority(PaymentAuthority):
    """Authority modelling a payment as an intent settled by charges (Stripe)."""

    @abstractmethod
    async def retrieve_payment_intent(self, reference: str) -> Optional[Dict[str, Any]]:
        """Retrieve the payment intent for a reference."""
        pass

    @abstractmethod
    async def list_charges(self, reference: str, limit: int = 1) -> List[Dict[str, Any]]:
        """List the most recent charges for a payment intent."""
        pass

    @abstractmethod
    async def retrieve_charge(self, charge_id: str) -> Optional[Dict[str, Any]]:
        """Retrieve a charge by id."""
        pass


class TransactionAuthority(PaymentAuthority):
    """Authority verifying a single transaction by reference (Paystack)."""

    @abstractmethod
    async def verify_transaction(self, reference: str) -> Optional[Dict[str, Any]]:
        """Return the transaction record for a reference."""
        pass


# Online payment methods and the authority that settles each
ONLINE_PAYMENT_PROVIDERS = {
    "stripe": "stripe",
    "card": "stripe",
    "online": "stripe",
    "paystack": "paystack",
}
