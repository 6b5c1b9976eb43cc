"""SMS notifications through the Twilio Messages API."""
import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from app.services.notifications.payload import (
    DeliveryResult,
    OrderNotification,
    format_currency,
)

logger = logging.getLogger(__name__)

MAX_SMS_LENGTH = 300
ELLIPSIS = "..."


def format_order_sms(order: OrderNotification) -> str:
    """Short admin alert; the address is truncated to keep the text within MAX_SMS_LENGTH."""
    count = order.item_count
    noun = "item" if count == 1 else "items"
    head = (
        f"New Order: {order.order_number}\n"
        f"Customer: {order.customer_name}\n"
        f"Total: {format_currency(order.total)}\n"
        f"{count} {noun}\n"
        "Address: "
    )
    address = order.delivery_address
    if len(head) + len(address) > MAX_SMS_LENGTH:
        room = max(MAX_SMS_LENGTH - len(head) - len(ELLIPSIS), 0)
        address = address[:room] + ELLIPSIS
    return (head + address)[:MAX_SMS_LENGTH]


class SmsSender(ABC):
    """Abstract base class for SMS delivery."""

    @abstractmethod
    async def send_new_order_notification(self, order: OrderNotification) -> DeliveryResult:
        """Alert the admin phone about a new order."""
        pass


class TwilioSmsSender(SmsSender):
    """Sends SMS via Twilio's REST API."""

    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        from_number: Optional[str],
        admin_phone: Optional[str] = None,
        api_base: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.admin_phone = admin_phone
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def send(self, to: Optional[str], body: str) -> DeliveryResult:
        """Send one SMS. Never raises."""
        if not self.account_sid or not self.auth_token:
            logger.warning("[SMS] Twilio credentials not configured, skipping SMS")
            return DeliveryResult(success=False, error="Twilio client not configured")
        if not self.from_number:
            logger.warning("[SMS] Twilio phone number not configured, skipping SMS")
            return DeliveryResult(success=False, error="Twilio phone number not configured")
        if not to:
            logger.warning("[SMS] No recipient phone number, skipping SMS")
            return DeliveryResult(success=False, error="No recipient")

        try:
            async with httpx.AsyncClient(
                base_url=self.api_base,
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post(
                    f"/Accounts/{self.account_sid}/Messages.json",
                    data={"To": to, "From": self.from_number, "Body": body},
                )
                response.raise_for_status()
                sid = response.json().get("sid")
        except Exception as e:
            logger.error(
                f"[SMS] Failed to send SMS to {to} - Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return DeliveryResult(success=False, error=str(e))

        logger.info(f"[SMS] Sent SMS to {to} - sid: {sid}")
        return DeliveryResult(success=True, message_id=sid)

    async def send_new_order_notification(self, order: OrderNotification) -> DeliveryResult:
        return await self.send(self.admin_phone, format_order_sms(order))
