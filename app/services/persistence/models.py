"""Order drafts handed to the persistence service."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from app.services.ordering.models import OrderData, OrderSubmission
from app.services.ordering.pricing import PriceBreakdown
from app.services.ordering.status import PaymentStatus
from app.services.payments.base import ReconciledPayment


class OrderItemExtraDraft(BaseModel):
    extra_item_id: Optional[str] = None
    name: str
    price: Decimal
    quantity: int = 1


class OrderItemDraft(BaseModel):
    item_name: str
    quantity: int
    price: Decimal  # unit price charged
    variant_name: Optional[str] = None
    measurement: Optional[str] = None
    measurement_type: Optional[str] = None
    extras: List[OrderItemExtraDraft] = []


class PaymentDraft(BaseModel):
    reference: str
    amount: Decimal
    currency: str
    status: PaymentStatus = PaymentStatus.PAID
    payment_method: str
    gateway: str
    gateway_response: Dict[str, Any] = {}
    processed_at: Optional[datetime] = None


class OrderDraft(BaseModel):
    """A fully priced order ready to be written."""

    customer_id: Optional[str] = None
    customer_name: str
    customer_email: str
    customer_phone: str
    delivery_address: str
    delivery_city: str
    special_instructions: Optional[str] = None

    subtotal: Decimal
    delivery_fee: Decimal
    vat_rate: Decimal = Decimal("0")
    vat_amount: Decimal = Decimal("0")
    total: Decimal

    delivery_method: str  # STANDARD, EXPRESS
    payment_method: str
    payment_status: Optional[PaymentStatus] = None
    payment_reference: Optional[str] = None
    paid_at: Optional[datetime] = None

    items: List[OrderItemDraft]
    payment: Optional[PaymentDraft] = None

    @classmethod
    def from_submission(
        cls, submission: OrderSubmission, breakdown: PriceBreakdown
    ) -> "OrderDraft":
        """Snapshot a validated submission using server-computed totals."""
        return cls(
            customer_id=submission.customer_id if isinstance(submission, OrderData) else None,
            customer_name=submission.customer_name.strip(),
            customer_email=str(submission.customer_email),
            customer_phone=submission.customer_phone.strip(),
            delivery_address=submission.delivery_address.strip(),
            delivery_city=submission.delivery_city.strip(),
            special_instructions=submission.special_instructions or None,
            subtotal=breakdown.subtotal,
            delivery_fee=breakdown.delivery_fee,
            vat_rate=breakdown.vat_rate,
            vat_amount=breakdown.vat_amount,
            total=breakdown.total,
            delivery_method=submission.delivery_method.value.upper(),
            payment_method=submission.payment_method.value.upper(),
            items=[
                OrderItemDraft(
                    item_name=item.name,
                    quantity=item.quantity,
                    price=item.variant_price if item.variant_price is not None else item.price,
                    variant_name=item.variant or None,
                    measurement=item.measurement or None,
                    measurement_type=item.measurement_type or None,
                    extras=[
                        OrderItemExtraDraft(
                            extra_item_id=extra.id,
                            name=extra.name,
                            price=extra.price,
                            quantity=extra.quantity or 1,
                        )
                        for extra in item.extras
                    ],
                )
                for item in submission.items
            ],
        )

    def with_payment(self, payment: ReconciledPayment, paid_at: datetime) -> "OrderDraft":
        """Mark the draft as paid and attach a payment ledger row."""
        return self.model_copy(
            update={
                "payment_status": PaymentStatus.PAID,
                "payment_reference": payment.reference,
                "paid_at": paid_at,
                "payment": PaymentDraft(
                    reference=payment.reference,
                    amount=payment.amount,
                    currency=payment.currency,
                    status=PaymentStatus.PAID,
                    payment_method=self.payment_method.lower(),
                    gateway=payment.gateway,
                    gateway_response=payment.gateway_response,
                    processed_at=paid_at,
                ),
            }
        )
