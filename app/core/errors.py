"""Order pipeline exceptions."""
from typing import List, Optional


class OrderPipelineError(Exception):
    """Base class for order pipeline errors."""


class OrderValidationError(OrderPipelineError):
    """Input or money invariant failure. Never retried."""

    def __init__(self, message: str = "Validation error", details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or [message]


class DatastoreUnavailableError(OrderPipelineError):
    """The datastore stayed unreachable after bounded retries."""


class OrderNotFoundError(OrderPipelineError):
    """No order matches the given identifier."""


class InvalidStatusTransitionError(OrderPipelineError):
    """Requested order status change is not allowed from the current status."""

    def __init__(self, current: str, requested: str):
        super().__init__(f"Cannot move order from {current} to {requested}")
        self.current = current
        self.requested = requested


class PaymentAuthorityError(OrderPipelineError):
    """The payment authority could not be reached or answered with an error."""
