"""Payment reconciliation services."""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Dict, Optional

from app.services.ordering.pricing import quantize_money
from app.services.payments.base import (
    ChargeAuthority,
    PaymentAuthority,
    ReconciledPayment,
    TransactionAuthority,
)

logger = logging.getLogger(__name__)


def _minor_to_major(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return quantize_money(Decimal(value) / 100)


def _timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
    except (OverflowError, OSError, ValueError):
        return None


def _iso_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string into naive UTC."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _charge_id(value: Any) -> Optional[str]:
    """`latest_charge` is either an id string or an expanded charge object."""
    if isinstance(value, str) and value:
        return value
    if isinstance(value, dict) and isinstance(value.get("id"), str):
        return value["id"]
    return None


class PaymentReconciler(ABC):
    """Enriches a payment reference with facts from the payment authority.

    Every lookup is optional: a failure, timeout or odd response is logged and
    the corresponding fields keep the caller's fallback values. Reconciliation
    never prevents an order from being created.
    """

    def __init__(self, authority: PaymentAuthority, timeout: float = 10.0):
        self.authority = authority
        self.timeout = timeout

    async def _attempt(self, step: str, reference: str, call: Awaitable[Any]) -> Optional[Any]:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"[PAYMENT] {step} timed out after {self.timeout}s - reference: {reference}"
            )
        except Exception as e:
            logger.warning(
                f"[PAYMENT] {step} failed - reference: {reference}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )
        return None

    def _log_result(self, payment: ReconciledPayment, fallback_amount: Decimal) -> None:
        if payment.amount != fallback_amount:
            logger.warning(
                f"[PAYMENT] Authority amount {payment.amount} {payment.currency} differs from "
                f"order total {fallback_amount} - reference: {payment.reference}"
            )
        logger.info(
            f"[PAYMENT] Reconciled {payment.reference} via {payment.gateway} - "
            f"amount: {payment.amount} {payment.currency}, "
            f"status: {payment.status or 'unknown'}, "
            f"receipt: {'yes' if payment.receipt_url else 'no'}, complete: {payment.complete}"
        )

    @abstractmethod
    async def reconcile(
        self, reference: str, fallback_amount: Decimal, fallback_currency: str
    ) -> ReconciledPayment:
        """
        Gather amount, currency and settlement details for a payment reference.

        Args:
            reference: Payment reference issued by the authority
            fallback_amount: Locally computed order total
            fallback_currency: Currency assumed when the authority is silent

        Returns:
            ReconciledPayment; `complete` is False when any lookup was skipped.
        """
        pass


class StripeReconciler(PaymentReconciler):
    """Reconciles a Stripe payment intent through its latest charge."""

    authority: ChargeAuthority

    async def reconcile(
        self, reference: str, fallback_amount: Decimal, fallback_currency: str
    ) -> ReconciledPayment:
        complete = True
        amount = fallback_amount
        currency = fallback_currency.lower()
        status: Optional[str] = None
        paid_at: Optional[datetime] = None
        receipt_url: Optional[str] = None
        charge_id: Optional[str] = None

        intent = await self._attempt(
            "Retrieve payment intent", reference, self.authority.retrieve_payment_intent(reference)
        )
        if isinstance(intent, dict):
            intent_amount = _minor_to_major(intent.get("amount"))
            if intent_amount is not None:
                amount = intent_amount
            if isinstance(intent.get("currency"), str) and intent["currency"]:
                currency = intent["currency"].lower()
            if isinstance(intent.get("status"), str):
                status = intent["status"].lower()
            charge_id = _charge_id(intent.get("latest_charge"))
        else:
            complete = False
            intent = None

        if charge_id is None:
            charges = await self._attempt(
                "List charges", reference, self.authority.list_charges(reference, limit=1)
            )
            if isinstance(charges, list) and charges and isinstance(charges[0], dict):
                charge_id = _charge_id(charges[0].get("id"))

        charge: Optional[Dict[str, Any]] = None
        if charge_id:
            charge = await self._attempt(
                "Retrieve charge", reference, self.authority.retrieve_charge(charge_id)
            )
        if isinstance(charge, dict):
            if isinstance(charge.get("receipt_url"), str):
                receipt_url = charge["receipt_url"]
            paid_at = _timestamp(charge.get("created"))
        else:
            complete = False

        payment = ReconciledPayment(
            reference=reference,
            amount=amount,
            currency=currency,
            receipt_url=receipt_url,
            status=status,
            paid_at=paid_at,
            gateway=self.authority.name,
            gateway_response={
                "provider": self.authority.name,
                "paymentIntent": intent,
                "receiptUrl": receipt_url,
            },
            complete=complete,
        )
        self._log_result(payment, fallback_amount)
        return payment


class PaystackReconciler(PaymentReconciler):
    """Reconciles a Paystack transaction with a single verify call."""

    authority: TransactionAuthority

    async def reconcile(
        self, reference: str, fallback_amount: Decimal, fallback_currency: str
    ) -> ReconciledPayment:
        amount = fallback_amount
        currency = fallback_currency.lower()
        status: Optional[str] = None
        paid_at: Optional[datetime] = None

        transaction = await self._attempt(
            "Verify transaction", reference, self.authority.verify_transaction(reference)
        )
        complete = isinstance(transaction, dict)
        if complete:
            tx_amount = _minor_to_major(transaction.get("amount"))
            if tx_amount is not None:
                amount = tx_amount
            if isinstance(transaction.get("currency"), str) and transaction["currency"]:
                currency = transaction["currency"].lower()
            if isinstance(transaction.get("status"), str):
                status = transaction["status"].lower()
            paid_at = _iso_datetime(transaction.get("paid_at") or transaction.get("paidAt"))
        else:
            transaction = None

        payment = ReconciledPayment(
            reference=reference,
            amount=amount,
            currency=currency,
            status=status,
            paid_at=paid_at,
            gateway=self.authority.name,
            gateway_response={"provider": self.authority.name, "transaction": transaction},
            complete=complete,
        )
        self._log_result(payment, fallback_amount)
        return payment
