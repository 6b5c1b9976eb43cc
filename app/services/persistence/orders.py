"""Order persistence service."""
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, NamedTuple, Optional, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.errors import (
    InvalidStatusTransitionError,
    OrderNotFoundError,
    OrderValidationError,
)
from app.db.models import Order, OrderItem, OrderItemExtra, Payment
from app.services.ordering.order_number import generate_order_number
from app.services.ordering.pricing import ZERO, totals_reconcile
from app.services.ordering.status import (
    INITIAL_ORDER_STATUS,
    OrderStatus,
    PaymentStatus,
    can_transition,
)
from app.services.persistence.models import OrderDraft
from app.services.persistence.retry import retry_database_operation

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CreateOrderResult(NamedTuple):
    order: Order
    created: bool  # False when an order for the same payment already existed


def check_money_invariant(draft: OrderDraft) -> None:
    """Raise OrderValidationError unless the draft's money figures are consistent."""
    errors: List[str] = []
    for field in ("subtotal", "delivery_fee", "vat_amount", "total"):
        if getattr(draft, field) < ZERO:
            errors.append(f"{field}: Must not be negative")
    if not draft.items:
        errors.append("items: At least one item is required")
    for index, item in enumerate(draft.items):
        if item.quantity <= 0:
            errors.append(f"items.{index}.quantity: Quantity must be positive")
        if item.price < ZERO:
            errors.append(f"items.{index}.price: Price must not be negative")
        for extra_index, extra in enumerate(item.extras):
            if extra.quantity <= 0 or extra.price < ZERO:
                errors.append(f"items.{index}.extras.{extra_index}: Invalid extra")
    if not totals_reconcile(draft.subtotal, draft.delivery_fee, draft.vat_amount, draft.total):
        errors.append("total: subtotal + deliveryFee + vatAmount must equal total")
    if errors:
        raise OrderValidationError("Validation error", errors)


def _order_query():
    return select(Order).options(
        selectinload(Order.items).selectinload(OrderItem.extras),
        selectinload(Order.payments),
    ).execution_options(populate_existing=True)


class OrderPersistenceService:
    """Service for persisting orders together with their items, extras and payment."""

    def __init__(
        self,
        db: AsyncSession,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        order_number_factory: Callable[[], str] = generate_order_number,
    ):
        self.db = db
        self.max_attempts = max_attempts if max_attempts is not None else settings.db_retry_attempts
        self.retry_delay = (
            retry_delay if retry_delay is not None else settings.db_retry_delay_seconds
        )
        self.order_number_factory = order_number_factory

    async def _retry(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await retry_database_operation(
            operation,
            max_attempts=self.max_attempts,
            delay=self.retry_delay,
            on_retry=self.db.rollback,
        )

    async def create_order(
        self, draft: OrderDraft, order_number: Optional[str] = None
    ) -> CreateOrderResult:
        """
        Persist an order atomically.

        Args:
            draft: Priced order snapshot
            order_number: Pre-generated order number; one is generated if omitted

        Returns:
            CreateOrderResult with the re-read order. `created` is False when
            the payment reference was already recorded.

        Raises:
            OrderValidationError: money invariant violated (never retried)
            DatastoreUnavailableError: datastore unreachable after retries
        """
        check_money_invariant(draft)

        if draft.payment_reference:
            existing = await self.get_order_by_payment_reference(draft.payment_reference)
            if existing:
                logger.info(
                    f"[PERSISTENCE] Order {existing.order_number} already exists for "
                    f"payment {draft.payment_reference}"
                )
                return CreateOrderResult(existing, False)

        number = order_number or self.order_number_factory()
        order_id: Optional[str] = None
        for collision_attempt in range(2):
            try:
                order_id = await self._retry(lambda: self._write_order(draft, number))
                break
            except IntegrityError:
                if draft.payment_reference:
                    existing = await self.get_order_by_payment_reference(draft.payment_reference)
                    if existing:
                        logger.info(
                            f"[PERSISTENCE] Concurrent duplicate for payment "
                            f"{draft.payment_reference}, returning {existing.order_number}"
                        )
                        return CreateOrderResult(existing, False)
                if collision_attempt == 1:
                    logger.error(f"[PERSISTENCE] Order number collision repeated for {number}")
                    raise
                logger.warning(f"[PERSISTENCE] Order number {number} collided, regenerating")
                number = self.order_number_factory()

        order = await self.get_order_by_id(order_id)
        logger.info(
            f"[PERSISTENCE] Created order {order.order_number} - id: {order.id}, "
            f"total: {order.total}, items: {len(order.items)}"
        )
        return CreateOrderResult(order, True)

    async def _write_order(self, draft: OrderDraft, order_number: str) -> str:
        """Write one order in a single transaction and return its id."""
        try:
            order = Order(
                order_number=order_number,
                customer_id=draft.customer_id,
                customer_name=draft.customer_name,
                customer_email=draft.customer_email,
                customer_phone=draft.customer_phone,
                delivery_address=draft.delivery_address,
                delivery_city=draft.delivery_city,
                special_instructions=draft.special_instructions,
                subtotal=draft.subtotal,
                delivery_fee=draft.delivery_fee,
                vat_rate=draft.vat_rate,
                vat_amount=draft.vat_amount,
                total=draft.total,
                delivery_method=draft.delivery_method,
                status=INITIAL_ORDER_STATUS.value,
                payment_method=draft.payment_method,
                payment_status=draft.payment_status.value if draft.payment_status else None,
                payment_reference=draft.payment_reference,
                paid_at=draft.paid_at,
            )
            self.db.add(order)
            await self.db.flush()

            items = []
            for item_draft in draft.items:
                item = OrderItem(
                    order_id=order.id,
                    item_name=item_draft.item_name,
                    quantity=item_draft.quantity,
                    price=item_draft.price,
                    variant_name=item_draft.variant_name,
                    measurement=item_draft.measurement,
                    measurement_type=item_draft.measurement_type,
                )
                self.db.add(item)
                items.append((item, item_draft))
            await self.db.flush()

            for item, item_draft in items:
                for extra in item_draft.extras:
                    self.db.add(
                        OrderItemExtra(
                            order_item_id=item.id,
                            extra_item_id=extra.extra_item_id,
                            name=extra.name,
                            price=extra.price,
                            quantity=extra.quantity,
                        )
                    )

            if draft.payment is not None:
                self.db.add(
                    Payment(
                        order_id=order.id,
                        payment_reference=draft.payment.reference,
                        amount=draft.payment.amount,
                        currency=draft.payment.currency,
                        status=draft.payment.status.value,
                        payment_method=draft.payment.payment_method,
                        gateway=draft.payment.gateway,
                        gateway_response=draft.payment.gateway_response,
                        processed_at=draft.payment.processed_at,
                    )
                )

            await self.db.commit()
            return order.id
        except Exception as e:
            logger.warning(
                f"[PERSISTENCE] Order write rolled back - order_number: {order_number}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )
            await self.db.rollback()
            raise

    async def _fetch_one(self, *criteria) -> Optional[Order]:
        result = await self.db.execute(_order_query().where(*criteria))
        return result.scalar_one_or_none()

    async def get_order_by_id(self, order_id: str) -> Optional[Order]:
        """Get order by ID with items, extras and payments."""
        return await self._retry(lambda: self._fetch_one(Order.id == order_id))

    async def get_order_by_number(self, order_number: str) -> Optional[Order]:
        """Get order by its public order number."""
        return await self._retry(lambda: self._fetch_one(Order.order_number == order_number))

    async def get_order_by_payment_reference(self, reference: str) -> Optional[Order]:
        """Get the order created for a payment reference."""
        return await self._retry(lambda: self._fetch_one(Order.payment_reference == reference))

    async def update_payment_status(
        self, reference: str, status: PaymentStatus
    ) -> Optional[Order]:
        """
        Record a payment status reported out of band (webhook).

        Returns the order, or None when no order carries the reference.
        A PAID payment is never moved to another status.
        Notifications are never re-sent from here.
        """

        async def _apply() -> Optional[Order]:
            order = await self._fetch_one(Order.payment_reference == reference)
            if order is None:
                return None
            if order.payment_status == status.value:
                return order
            if order.payment_status == PaymentStatus.PAID.value:
                # Settled payments are final; late failure events are stale
                logger.warning(
                    f"[PERSISTENCE] Ignoring {status.value} for already paid payment {reference}"
                )
                return order
            now = datetime.utcnow()
            order.payment_status = status.value
            if status == PaymentStatus.PAID and order.paid_at is None:
                order.paid_at = now
            await self.db.execute(
                update(Payment)
                .where(Payment.payment_reference == reference)
                .values(status=status.value, processed_at=now)
            )
            await self.db.commit()
            return order

        order = await self._retry(_apply)
        if order is None:
            logger.warning(f"[PERSISTENCE] No order for payment reference {reference}")
            return None
        return await self.get_order_by_id(order.id)

    async def update_status(self, order_id: str, new_status: OrderStatus) -> Order:
        """Move an order along its lifecycle."""

        async def _apply() -> Order:
            order = await self._fetch_one(Order.id == order_id)
            if order is None:
                raise OrderNotFoundError(f"Order {order_id} not found")
            if not can_transition(order.status, new_status):
                raise InvalidStatusTransitionError(order.status, str(new_status))
            order.status = OrderStatus(new_status).value
            await self.db.commit()
            return order

        order = await self._retry(_apply)
        logger.info(f"[PERSISTENCE] Order {order.order_number} moved to {order.status}")
        return order
