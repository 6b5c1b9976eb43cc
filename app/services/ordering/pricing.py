"""Order pricing.

Computes authoritative line totals and order totals from cart lines and the
pricing configuration in force. Pure functions, no I/O.

Money is handled as ``Decimal``. Each component (subtotal, delivery fee, VAT)
is rounded to the currency's minor unit before the total is summed, so a stored
total always equals the sum of its stored components.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel

from app.core.errors import OrderValidationError
from app.services.ordering.models import DeliveryMethod, OrderLineRequest
from app.services.settings.provider import PricingConfig

CENT = Decimal("0.01")
ZERO = Decimal("0")


def quantize_money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Round a money amount to two decimal places, half up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class PricingExtra(BaseModel):
    """Add-on price input."""

    price: Decimal
    quantity: Optional[int] = None


class PricingLine(BaseModel):
    """Cart line price input."""

    base_item_id: str
    unit_price: Decimal
    variant_price: Optional[Decimal] = None
    quantity: int
    extras: List[PricingExtra] = []

    @classmethod
    def from_request(cls, line: OrderLineRequest) -> "PricingLine":
        return cls(
            base_item_id=line.id,
            unit_price=line.price,
            variant_price=line.variant_price,
            quantity=line.quantity,
            extras=[PricingExtra(price=ex.price, quantity=ex.quantity) for ex in line.extras],
        )

    @property
    def effective_unit_price(self) -> Decimal:
        return self.variant_price if self.variant_price is not None else self.unit_price


class PriceBreakdown(BaseModel):
    """Server-computed totals for an order."""

    line_totals: List[Decimal]
    subtotal: Decimal
    delivery_fee: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    total: Decimal


def extras_total(line: PricingLine) -> Decimal:
    """Sum of extra price times extra quantity (default 1) for one line."""
    return sum(
        (extra.price * (extra.quantity or 1) for extra in line.extras),
        ZERO,
    )


def line_total(line: PricingLine) -> Decimal:
    """(effective unit price + extras) * quantity."""
    return (line.effective_unit_price + extras_total(line)) * line.quantity


def validate_lines(lines: Sequence[PricingLine]) -> List[str]:
    """Collect per-field problems that make a line list unpriceable."""
    if not lines:
        return ["items: At least one item is required"]

    errors = []
    for index, line in enumerate(lines):
        if line.quantity <= 0:
            errors.append(f"items.{index}.quantity: Quantity must be positive")
        if line.unit_price < 0:
            errors.append(f"items.{index}.price: Price must be non-negative")
        if line.variant_price is not None and line.variant_price < 0:
            errors.append(f"items.{index}.variantPrice: Variant price must be non-negative")
        for extra_index, extra in enumerate(line.extras):
            if extra.price < 0:
                errors.append(
                    f"items.{index}.extras.{extra_index}.price: Extra price must be non-negative"
                )
            if extra.quantity is not None and extra.quantity <= 0:
                errors.append(
                    f"items.{index}.extras.{extra_index}.quantity: Quantity must be positive"
                )
    return errors


def resolve_pricing(
    lines: Sequence[PricingLine],
    delivery_method: Union[DeliveryMethod, str],
    config: PricingConfig,
) -> PriceBreakdown:
    """
    Compute subtotal, delivery fee, VAT and total for a list of lines.

    VAT is charged on the subtotal only, never on the delivery fee.

    Raises:
        OrderValidationError: if the line list is empty or a line has a
            non-positive quantity or a negative price.
    """
    errors = validate_lines(lines)
    if errors:
        raise OrderValidationError("Validation error", errors)

    totals = [line_total(line) for line in lines]
    subtotal = quantize_money(sum(totals, ZERO))
    delivery_fee = quantize_money(config.delivery_fee_for(delivery_method))
    vat_rate = config.effective_vat_rate
    vat_amount = quantize_money(subtotal * vat_rate / 100)

    return PriceBreakdown(
        line_totals=[quantize_money(t) for t in totals],
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        vat_rate=vat_rate,
        vat_amount=vat_amount,
        total=subtotal + delivery_fee + vat_amount,
    )


def totals_reconcile(
    subtotal: Decimal, delivery_fee: Decimal, vat_amount: Decimal, total: Decimal
) -> bool:
    """Check the money invariant total == subtotal + delivery fee + VAT."""
    return quantize_money(subtotal + delivery_fee + vat_amount) == quantize_money(total)
