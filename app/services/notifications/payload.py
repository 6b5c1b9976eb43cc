"""Order snapshot shared by the notification collaborators."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from app.db.models import Order

ESTIMATED_DELIVERY = {
    "EXPRESS": "30-45 minutes",
    "STANDARD": "45-60 minutes",
}


class NotificationExtra(BaseModel):
    name: str
    price: Decimal
    quantity: int = 1


class NotificationItem(BaseModel):
    name: str
    quantity: int
    price: Decimal
    variant: Optional[str] = None
    extras: List[NotificationExtra] = []


class OrderNotification(BaseModel):
    """Everything an email, SMS or invoice needs to describe one order."""

    order_id: str
    order_number: str
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    delivery_address: str
    delivery_city: Optional[str] = None
    delivery_method: str
    special_instructions: Optional[str] = None
    created_at: datetime
    payment_method: str
    payment_status: Optional[str] = None
    payment_reference: Optional[str] = None
    receipt_url: Optional[str] = None
    subtotal: Decimal
    delivery_fee: Decimal
    vat_rate: Decimal = Decimal("0")
    vat_amount: Decimal = Decimal("0")
    total: Decimal
    items: List[NotificationItem] = []
    estimated_delivery: Optional[str] = None

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)


class DeliveryResult(BaseModel):
    """Outcome of one notification attempt."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def format_currency(amount: Decimal) -> str:
    return f"₦{Decimal(amount):,.2f}"


def build_order_payload(order: Order, receipt_url: Optional[str] = None) -> OrderNotification:
    """Build the notification payload from a persisted order with items loaded."""
    return OrderNotification(
        order_id=order.id,
        order_number=order.order_number,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        customer_phone=order.customer_phone,
        delivery_address=order.delivery_address,
        delivery_city=order.delivery_city,
        delivery_method=order.delivery_method,
        special_instructions=order.special_instructions,
        created_at=order.created_at,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        payment_reference=order.payment_reference,
        receipt_url=receipt_url,
        subtotal=order.subtotal,
        delivery_fee=order.delivery_fee,
        vat_rate=order.vat_rate or Decimal("0"),
        vat_amount=order.vat_amount or Decimal("0"),
        total=order.total,
        items=[
            NotificationItem(
                name=item.item_name,
                quantity=item.quantity,
                price=item.price,
                variant=item.variant_name,
                extras=[
                    NotificationExtra(name=extra.name, price=extra.price, quantity=extra.quantity)
                    for extra in item.extras
                ],
            )
            for item in order.items
        ],
        estimated_delivery=ESTIMATED_DELIVERY.get((order.delivery_method or "").upper()),
    )
