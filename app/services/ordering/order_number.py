"""Order number generation.

Numbers look like ``TB-12345678-7QK2ZP4M``: prefix, last eight digits of the
current epoch milliseconds, and a random upper-case alphanumeric suffix. No
central counter is involved; the unique constraint on ``orders.order_number``
is the final guard against collisions.
"""
import secrets
import string
import time
from typing import Optional

from app.core.config import settings

SUFFIX_ALPHABET = string.ascii_uppercase + string.digits
SUFFIX_LENGTH = 8


def _timestamp_part() -> str:
    return str(int(time.time() * 1000))[-8:]


def _random_part(length: int = SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(SUFFIX_ALPHABET) for _ in range(length))


def generate_order_number(prefix: Optional[str] = None) -> str:
    """Generate a human-readable order number."""
    prefix = (prefix or settings.order_number_prefix).upper()
    return f"{prefix}-{_timestamp_part()}-{_random_part()}"


def generate_temp_order_number(prefix: Optional[str] = None) -> str:
    """Generate a placeholder number for a cart that has not been paid yet."""
    prefix = (prefix or settings.order_number_prefix).upper()
    return f"{prefix}-TEMP-{_timestamp_part()}-{_random_part(4)}"
