"""Order request and response models."""
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class DeliveryMethod(str, Enum):
    """Delivery methods offered at checkout."""

    STANDARD = "standard"
    EXPRESS = "express"

    def __str__(self) -> str:
        return self.value


class PaymentMethod(str, Enum):
    """Payment method tags accepted from the storefront."""

    CASH = "cash"
    CARD = "card"
    ONLINE = "online"
    STRIPE = "stripe"
    PAYSTACK = "paystack"

    def __str__(self) -> str:
        return self.value


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


def _as_text(value: Any) -> Any:
    """Accept numeric identifiers and measurements sent as JSON numbers."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return value


TextValue = Annotated[str, BeforeValidator(_as_text)]


class CamelModel(BaseModel):
    """Base model reading and writing camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtraRequest(CamelModel):
    """Add-on chosen for a cart line."""

    id: Optional[TextValue] = None
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    quantity: Optional[int] = Field(default=None, gt=0)
    group_name: Optional[str] = None


class OrderLineRequest(CamelModel):
    """One cart line as submitted by the storefront."""

    id: TextValue
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)
    variant: Optional[str] = None
    variant_price: Optional[Decimal] = Field(default=None, ge=0)
    measurement: Optional[TextValue] = None
    measurement_type: Optional[str] = None
    extras: List[ExtraRequest] = []


class OrderSubmission(CamelModel):
    """Checkout payload for pay-on-delivery orders."""

    customer_name: str = Field(min_length=1)
    customer_email: EmailStr
    customer_phone: str = Field(min_length=10)
    delivery_address: str = Field(min_length=5)
    delivery_city: str = Field(min_length=2)
    special_instructions: Optional[str] = None
    delivery_method: Annotated[DeliveryMethod, BeforeValidator(_lower)]
    payment_method: Annotated[PaymentMethod, BeforeValidator(_lower)]
    items: List[OrderLineRequest]
    subtotal: Decimal = Field(ge=0)
    delivery_fee: Decimal = Field(ge=0)
    vat_rate: Optional[Decimal] = Field(default=None, ge=0)
    vat_amount: Optional[Decimal] = Field(default=None, ge=0)
    total: Decimal = Field(ge=0)

    @field_validator("items")
    @classmethod
    def require_items(cls, items: List[OrderLineRequest]) -> List[OrderLineRequest]:
        if not items:
            raise ValueError("At least one item is required")
        return items


class OrderData(OrderSubmission):
    """Checkout payload attached to a post-payment confirmation."""

    customer_id: Optional[str] = None


class OrderConfirmation(CamelModel):
    """Post-payment confirmation request."""

    payment_intent_id: str = Field(min_length=1)
    order_data: OrderData


class OrderCreatedData(CamelModel):
    """Identifiers returned once an order is durable."""

    order_id: str
    order_number: str
    total: float
    status: str


class OrderConfirmedData(OrderCreatedData):
    """Identifiers returned for a paid order."""

    payment_status: Optional[str] = None


class OrderCreatedResponse(CamelModel):
    """Response envelope for pay-on-delivery submissions."""

    success: bool = True
    message: str
    data: OrderCreatedData


class OrderConfirmedResponse(CamelModel):
    """Response envelope for post-payment confirmations."""

    success: bool = True
    message: str
    data: OrderConfirmedData


class PreparedOrderData(CamelModel):
    """Server-side totals for a cart that has not been paid yet."""

    temp_order_number: str
    subtotal: float
    delivery_fee: float
    vat_amount: float
    total: float


class PreparedOrderResponse(CamelModel):
    """Response envelope for order preparation."""

    success: bool = True
    message: str
    data: PreparedOrderData


class TrackedExtra(CamelModel):
    name: str
    price: float
    quantity: int


class TrackedItem(CamelModel):
    name: str
    quantity: int
    unit_price: float
    variant: Optional[str] = None
    extras: List[TrackedExtra] = []
    total_price: float


class TrackedOrder(CamelModel):
    """Public view of an order, without customer contact details."""

    order_number: str
    status: str
    customer_name: str
    delivery_method: str
    payment_method: str
    payment_status: Optional[str] = None
    subtotal: float
    delivery_fee: float
    vat_rate: float
    vat_amount: float
    total: float
    created_at: str
    updated_at: str
    items: List[TrackedItem] = []


class TrackedOrderResponse(CamelModel):
    success: bool = True
    data: TrackedOrder
