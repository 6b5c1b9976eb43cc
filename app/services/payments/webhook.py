"""Webhook signature verification."""
import hashlib
import hmac
import time
from typing import List, Optional, Tuple

DEFAULT_TOLERANCE_SECONDS = 300


class WebhookSignatureError(ValueError):
    """A webhook signature header is missing, malformed, stale or wrong."""


def _parse_header(header: str) -> Tuple[Optional[int], List[str]]:
    timestamp: Optional[int] = None
    signatures: List[str] = []
    for part in header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise WebhookSignatureError("Invalid timestamp in signature header")
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    return hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()


def verify_stripe_signature(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
    now: Optional[float] = None,
) -> None:
    """
    Check a `t=<ts>,v1=<hex>` header against the raw request body.

    Raises:
        WebhookSignatureError: if no v1 signature matches or the timestamp
            is outside the tolerance window.
    """
    if not header:
        raise WebhookSignatureError("Missing stripe-signature header")

    timestamp, signatures = _parse_header(header)
    if timestamp is None or not signatures:
        raise WebhookSignatureError("Malformed stripe-signature header")

    expected = compute_signature(payload, timestamp, secret)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise WebhookSignatureError("No matching signature")

    current = time.time() if now is None else now
    if tolerance and abs(current - timestamp) > tolerance:
        raise WebhookSignatureError("Signature timestamp outside tolerance")


def verify_paystack_signature(payload: bytes, header: Optional[str], secret: str) -> None:
    """
    Check `x-paystack-signature`, the hex HMAC-SHA512 of the raw body keyed
    with the Paystack secret key.

    Raises:
        WebhookSignatureError: if the header is missing or does not match.
    """
    if not header:
        raise WebhookSignatureError("Missing x-paystack-signature header")

    expected = hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()
    if not hmac.compare_digest(expected, header.strip().lower()):
        raise WebhookSignatureError("No matching signature")
