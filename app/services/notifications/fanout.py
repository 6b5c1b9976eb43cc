"""Fire-and-forget notification fan-out after an order is persisted."""
import asyncio
import logging
from typing import Awaitable, Optional, Set

from app.services.notifications.email import EmailSender
from app.services.notifications.invoice import InvoiceGenerator
from app.services.notifications.payload import DeliveryResult, OrderNotification
from app.services.notifications.sms import SmsSender

logger = logging.getLogger(__name__)


class NotificationFanout:
    """
    Dispatches admin email, admin SMS and the invoice + customer email pair
    as independent background tasks.

    Failures are logged and never reach the caller or the other tasks.
    """

    def __init__(
        self,
        email_sender: EmailSender,
        sms_sender: SmsSender,
        invoice_generator: InvoiceGenerator,
    ):
        self.email_sender = email_sender
        self.sms_sender = sms_sender
        self.invoice_generator = invoice_generator
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, order: OrderNotification) -> None:
        """Spawn every notification for the order without awaiting them."""
        logger.info(f"[FANOUT] Dispatching notifications for {order.order_number}")
        self._spawn(
            self._guard("admin email", order, self.email_sender.send_new_order_notification(order)),
            f"admin-email-{order.order_number}",
        )
        self._spawn(
            self._guard("admin SMS", order, self.sms_sender.send_new_order_notification(order)),
            f"admin-sms-{order.order_number}",
        )
        self._spawn(self._invoice_and_confirmation(order), f"customer-{order.order_number}")

    def _spawn(self, coro: Awaitable, name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"[FANOUT] Task {task.get_name()} was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"[FANOUT] Task {task.get_name()} failed - Error: {type(exc).__name__}: {str(exc)}",
                exc_info=exc,
            )

    async def _guard(
        self, label: str, order: OrderNotification, call: Awaitable[DeliveryResult]
    ) -> Optional[DeliveryResult]:
        try:
            result = await call
        except Exception as e:
            logger.error(
                f"[FANOUT] {label} failed for {order.order_number} - "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )
            return None
        if result is not None and not result.success:
            logger.warning(f"[FANOUT] {label} not delivered for {order.order_number}: {result.error}")
        return result

    async def _invoice_and_confirmation(self, order: OrderNotification) -> None:
        invoice_pdf: Optional[bytes] = None
        try:
            invoice_pdf = await self.invoice_generator.generate(order)
        except Exception as e:
            logger.error(
                f"[INVOICE] Generation failed for {order.order_number}, sending email without it - "
                f"Error: {type(e).__name__}: {str(e)}",
                exc_info=True,
            )

        result = await self._guard(
            "customer email",
            order,
            self.email_sender.send_order_confirmation(order, invoice_pdf),
        )
        logger.info(
            f"[FANOUT] Customer notifications for {order.order_number} - "
            f"invoice: {'ok' if invoice_pdf else 'failed'}, "
            f"email: {'ok' if result is not None and result.success else 'failed'}"
        )

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight notifications, cancelling whatever outlives the timeout."""
        if not self._tasks:
            return
        tasks = list(self._tasks)
        logger.info(f"[FANOUT] Draining {len(tasks)} notification task(s)")
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"[FANOUT] Cancelled {len(pending)} notification task(s) on drain")
            await asyncio.gather(*pending, return_exceptions=True)
