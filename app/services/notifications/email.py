"""Email notifications over SMTP."""
import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import make_msgid
from html import escape
from typing import List, Optional, Tuple

from app.services.notifications.payload import (
    DeliveryResult,
    NotificationItem,
    OrderNotification,
    format_currency,
)

logger = logging.getLogger(__name__)


def _layout(business_name: str, title: str, body_html: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8" /><title>{escape(title)}</title></head>
<body style="font-family: Arial, sans-serif; background:#f6f7fb; color:#111; margin:0; padding:24px;">
  <table role="presentation" width="100%" style="max-width:640px; margin:0 auto; background:#fff;">
    <tr><td style="background:#387237; padding:20px 24px; color:#fff;">
      <div style="font-size:18px; font-weight:700;">{escape(business_name)}</div>
      <div style="font-size:14px;">{escape(title)}</div>
    </td></tr>
    <tr><td style="padding:24px;">{body_html}</td></tr>
  </table>
</body>
</html>"""


def _render_items(items: List[NotificationItem]) -> str:
    if not items:
        return ""
    rows = []
    for item in items:
        variant = f" ({escape(item.variant)})" if item.variant else ""
        extras = ""
        if item.extras:
            names = ", ".join(escape(extra.name) for extra in item.extras)
            extras = f'<div style="color:#6b7280; font-size:12px;">Extras: {names}</div>'
        rows.append(
            f"<tr><td>{item.quantity}&times;</td>"
            f"<td>{escape(item.name)}{variant}{extras}</td>"
            f'<td align="right">{format_currency(item.price)}</td></tr>'
        )
    return (
        '<table width="100%" style="border-collapse:collapse; margin-top:12px;">'
        '<thead><tr><th align="left">Qty</th><th align="left">Item</th>'
        '<th align="right">Price</th></tr></thead>'
        f"<tbody>{''.join(rows)}</tbody></table>"
    )


def _render_payment(order: OrderNotification) -> str:
    lines = [f"<div>Method: {escape(order.payment_method)}</div>"]
    if order.payment_status:
        lines.append(f"<div>Status: {escape(order.payment_status)}</div>")
    if order.payment_reference:
        lines.append(f"<div>Reference: {escape(order.payment_reference)}</div>")
    if order.receipt_url:
        lines.append(f'<div><a href="{escape(order.receipt_url)}">View payment receipt</a></div>')
    return (
        '<div style="margin-top:16px; padding:12px; border:1px solid #e5e7eb;">'
        f'<div style="font-weight:700;">Payment</div>{"".join(lines)}</div>'
    )


def build_order_confirmation_email(
    order: OrderNotification, business_name: str
) -> Tuple[str, str]:
    """Customer confirmation: (subject, html)."""
    subject = f"Your {business_name} order {order.order_number} is confirmed"
    vat = ""
    if order.vat_amount > 0:
        vat = f"<div>VAT ({order.vat_rate:.2f}%): {format_currency(order.vat_amount)}</div>"
    eta = ""
    if order.estimated_delivery:
        eta = f"<p>Estimated delivery: <strong>{order.estimated_delivery}</strong></p>"
    body = (
        f"<p>Hi <strong>{escape(order.customer_name)}</strong>,</p>"
        "<p>Thanks for your order. We are getting it ready!</p>"
        f"<div>Order placed on {order.created_at:%d %b %Y %H:%M}</div>"
        f"<div>Delivery address: {escape(order.delivery_address)}</div>"
        f"{_render_items(order.items)}"
        '<div style="margin-top:16px; border-top:1px dashed #e5e7eb;">'
        f"<div>Subtotal: {format_currency(order.subtotal)}</div>"
        f"<div>Delivery: {format_currency(order.delivery_fee)}</div>"
        f"{vat}"
        f"<div><strong>Total: {format_currency(order.total)}</strong></div></div>"
        f"{_render_payment(order)}{eta}"
    )
    return subject, _layout(business_name, "Order Confirmation", body)


def build_admin_new_order_email(
    order: OrderNotification, business_name: str
) -> Tuple[str, str]:
    """Admin alert: (subject, html)."""
    subject = f"New order received: {order.order_number}"
    contact = escape(order.customer_email or "no email")
    instructions = ""
    if order.special_instructions:
        instructions = f"<div>Instructions: {escape(order.special_instructions)}</div>"
    body = (
        "<p>A new order has been placed.</p>"
        f"<div>Customer: <strong>{escape(order.customer_name)}</strong> ({contact})</div>"
        f"<div>Phone: {escape(order.customer_phone or '-')}</div>"
        f"<div>Order #: <strong>{escape(order.order_number)}</strong></div>"
        f"<div>Total: <strong>{format_currency(order.total)}</strong></div>"
        f"<div>Delivery: {escape(order.delivery_method.title())} to "
        f"{escape(order.delivery_address)}</div>"
        f"{instructions}{_render_payment(order)}{_render_items(order.items)}"
    )
    return subject, _layout(business_name, "New Order Notification", body)


class EmailSender(ABC):
    """Abstract base class for email delivery."""

    @abstractmethod
    async def send_new_order_notification(self, order: OrderNotification) -> DeliveryResult:
        """Alert the admin mailbox about a new order."""
        pass

    @abstractmethod
    async def send_order_confirmation(
        self, order: OrderNotification, invoice_pdf: Optional[bytes] = None
    ) -> DeliveryResult:
        """Send the customer their confirmation, optionally with the invoice attached."""
        pass


class SmtpEmailSender(EmailSender):
    """SMTP email sender. Blocking smtplib calls run in a worker thread."""

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_address: str = "noreply@localhost",
        admin_email: Optional[str] = None,
        business_name: str = "South Place",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.admin_email = admin_email
        self.business_name = business_name
        self.timeout = timeout

    def _build_message(
        self,
        to: str,
        subject: str,
        html: str,
        attachment: Optional[Tuple[str, bytes]] = None,
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{self.business_name} <{self.from_address}>"
        msg["To"] = to
        msg["Message-ID"] = make_msgid(domain=self.from_address.partition("@")[2] or None)
        msg.set_content("This message requires an HTML capable email client.")
        msg.add_alternative(html, subtype="html")
        if attachment is not None:
            filename, data = attachment
            msg.add_attachment(data, maintype="application", subtype="pdf", filename=filename)
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.port != 25:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

    async def send(
        self,
        to: Optional[str],
        subject: str,
        html: str,
        attachment: Optional[Tuple[str, bytes]] = None,
    ) -> DeliveryResult:
        """Send one HTML email. Never raises."""
        if not self.host:
            logger.warning("[EMAIL] SMTP host not configured, skipping email")
            return DeliveryResult(success=False, error="Email transport not configured")
        if not to:
            logger.warning(f"[EMAIL] No recipient for '{subject}', skipping email")
            return DeliveryResult(success=False, error="No recipient")

        msg = self._build_message(to, subject, html, attachment)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except Exception as e:
            logger.error(
                f"[EMAIL] Failed to send '{subject}' to {to} - "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return DeliveryResult(success=False, error=str(e))

        logger.info(f"[EMAIL] Sent '{subject}' to {to}")
        return DeliveryResult(success=True, message_id=msg["Message-ID"])

    async def send_new_order_notification(self, order: OrderNotification) -> DeliveryResult:
        subject, html = build_admin_new_order_email(order, self.business_name)
        return await self.send(self.admin_email, subject, html)

    async def send_order_confirmation(
        self, order: OrderNotification, invoice_pdf: Optional[bytes] = None
    ) -> DeliveryResult:
        subject, html = build_order_confirmation_email(order, self.business_name)
        attachment = None
        if invoice_pdf:
            attachment = (f"invoice-{order.order_number}.pdf", invoice_pdf)
        return await self.send(order.customer_email, subject, html, attachment)
