"""PDF invoice generation."""
import asyncio
import io
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.services.notifications.payload import OrderNotification

logger = logging.getLogger(__name__)

BRAND_GREEN = colors.HexColor("#387237")


def _money(amount: Decimal) -> str:
    # Built-in PDF fonts have no naira glyph
    return f"NGN {Decimal(amount):,.2f}"


class InvoiceGenerator(ABC):
    """Abstract base class for invoice rendering."""

    @abstractmethod
    async def generate(self, order: OrderNotification) -> bytes:
        """Render an invoice for the order and return the document bytes."""
        pass


class PdfInvoiceGenerator(InvoiceGenerator):
    """Renders A4 PDF invoices with reportlab."""

    def __init__(
        self,
        business_name: str,
        business_address: str,
        business_phone: str,
        business_email: str,
    ):
        self.business_name = business_name
        self.business_address = business_address
        self.business_phone = business_phone
        self.business_email = business_email
        self.styles = getSampleStyleSheet()

    async def generate(self, order: OrderNotification) -> bytes:
        if not order.items:
            raise ValueError("Order items are required for invoice generation")
        pdf = await asyncio.to_thread(self.render, order)
        logger.info(f"[INVOICE] Generated invoice for {order.order_number} ({len(pdf)} bytes)")
        return pdf

    def render(self, order: OrderNotification) -> bytes:
        """Render synchronously; the output depends only on the order snapshot."""
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=18 * mm,
            rightMargin=18 * mm,
            topMargin=18 * mm,
            bottomMargin=18 * mm,
            title=f"Invoice {order.order_number}",
            author=self.business_name,
        )
        doc.build(self._story(order))
        return buffer.getvalue()

    def _para(self, text: str, style: str = "Normal") -> Paragraph:
        return Paragraph(escape(text), self.styles[style])

    def _story(self, order: OrderNotification) -> List:
        story = [
            self._para(self.business_name, "Title"),
            self._para(self.business_address),
            self._para(f"{self.business_phone} | {self.business_email}"),
            Spacer(1, 8 * mm),
            self._para(f"Invoice {order.order_number}", "Heading2"),
            self._para(f"Date: {order.created_at:%d %B %Y %H:%M}"),
            Spacer(1, 4 * mm),
            self._para("Bill To", "Heading3"),
            self._para(order.customer_name),
        ]
        for line in (order.customer_email, order.customer_phone):
            if line:
                story.append(self._para(line))
        address = order.delivery_address
        if order.delivery_city:
            address = f"{address}, {order.delivery_city}"
        story.append(self._para(address))
        story.append(Spacer(1, 6 * mm))

        story.append(self._items_table(order))
        story.append(Spacer(1, 4 * mm))
        story.append(self._totals_table(order))
        story.append(Spacer(1, 8 * mm))

        story.append(self._para("Payment Information", "Heading3"))
        story.append(self._para(f"Payment Method: {order.payment_method}"))
        story.append(self._para(f"Payment Status: {order.payment_status or 'PENDING'}"))
        if order.payment_reference:
            story.append(self._para(f"Payment Reference: {order.payment_reference}"))
        if order.estimated_delivery:
            story.append(self._para(f"Estimated Delivery: {order.estimated_delivery}"))

        story.append(Spacer(1, 10 * mm))
        story.append(self._para("Thank you for your business!", "Italic"))
        story.append(
            self._para(f"For questions, please contact us at {self.business_email}", "Italic")
        )
        return story

    def _items_table(self, order: OrderNotification) -> Table:
        rows = [["Item", "Qty", "Unit Price", "Amount"]]
        for item in order.items:
            name = item.name
            if item.variant:
                name = f"{name} ({item.variant})"
            rows.append(
                [name, str(item.quantity), _money(item.price), _money(item.price * item.quantity)]
            )
            for extra in item.extras:
                rows.append(
                    [
                        f"  + {extra.name}",
                        str(extra.quantity),
                        _money(extra.price),
                        _money(extra.price * extra.quantity),
                    ]
                )

        table = Table(rows, colWidths=[85 * mm, 15 * mm, 32 * mm, 32 * mm], repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), BRAND_GREEN),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                    ("LINEBELOW", (0, 1), (-1, -1), 0.25, colors.lightgrey),
                ]
            )
        )
        return table

    def _totals_table(self, order: OrderNotification) -> Table:
        rows = [
            ["Subtotal:", _money(order.subtotal)],
            ["Delivery Fee:", _money(order.delivery_fee)],
        ]
        if order.vat_amount > 0:
            rows.append([f"VAT ({order.vat_rate:.2f}%):", _money(order.vat_amount)])
        rows.append(["Total:", _money(order.total)])

        table = Table(rows, colWidths=[132 * mm, 32 * mm])
        table.setStyle(
            TableStyle(
                [
                    ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
                    ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                    ("LINEABOVE", (1, -1), (1, -1), 1.5, BRAND_GREEN),
                ]
            )
        )
        return table
