"""Order and payment status enumerations."""
from enum import Enum
from typing import Dict, FrozenSet, Union


class OrderStatus(str, Enum):
    """Order lifecycle statuses."""

    PENDING = "PENDING"  # Every order starts here
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    def __str__(self) -> str:
        """Return the string value of the status."""
        return self.value


class PaymentStatus(str, Enum):
    """Payment statuses shared by orders and payment ledger rows."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PAID = "PAID"
    FAILED = "FAILED"

    def __str__(self) -> str:
        return self.value


INITIAL_ORDER_STATUS = OrderStatus.PENDING

ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition(
    current: Union[OrderStatus, str], requested: Union[OrderStatus, str]
) -> bool:
    """Check whether an order may move from `current` to `requested`."""
    try:
        current_status = OrderStatus(current)
        requested_status = OrderStatus(requested)
    except ValueError:
        return False
    return requested_status in ORDER_STATUS_TRANSITIONS[current_status]
