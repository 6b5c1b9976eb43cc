"""Unit tests for order persistence and datastore retry."""
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.errors import (
    DatastoreUnavailableError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
    OrderValidationError,
)
from app.db.models import Order, OrderItemExtra, Payment
from app.services.ordering.status import OrderStatus, PaymentStatus
from app.services.persistence.models import (
    OrderDraft,
    OrderItemDraft,
    OrderItemExtraDraft,
    PaymentDraft,
)
from app.services.persistence.orders import OrderPersistenceService
from app.services.persistence.retry import is_transient_db_error, retry_database_operation


def make_draft(**overrides) -> OrderDraft:
    values = dict(
        customer_name="Ada Obi",
        customer_email="ada@example.com",
        customer_phone="+2348012345678",
        delivery_address="12 Admiralty Way, Lekki",
        delivery_city="Lagos",
        subtotal=Decimal("33.00"),
        delivery_fee=Decimal("2.99"),
        vat_amount=Decimal("0"),
        total=Decimal("35.99"),
        delivery_method="STANDARD",
        payment_method="CASH",
        items=[
            OrderItemDraft(item_name="Jollof Rice", quantity=1, price=Decimal("25.00")),
            OrderItemDraft(
                item_name="Small Chops",
                quantity=2,
                price=Decimal("3.00"),
                variant_name="Mini",
                extras=[OrderItemExtraDraft(extra_item_id="dip", name="Dip", price=Decimal("1.00"))],
            ),
        ],
    )
    values.update(overrides)
    return OrderDraft(**values)


def paid_draft(reference: str = "pi_1", status: PaymentStatus = PaymentStatus.PAID) -> OrderDraft:
    return make_draft(
        payment_method="STRIPE",
        payment_status=status,
        payment_reference=reference,
        payment=PaymentDraft(
            reference=reference,
            amount=Decimal("35.99"),
            currency="ngn",
            status=status,
            payment_method="stripe",
            gateway="stripe",
            gateway_response={"receiptUrl": "https://pay.stripe.com/receipts/ch_1"},
        ),
    )


async def count(db, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


def transient_error() -> OperationalError:
    return OperationalError("INSERT INTO orders", {}, Exception("server closed the connection"))


class TestCreateOrder:
    """Test atomic order creation."""

    @pytest.mark.asyncio
    async def test_create_order(self, order_service, test_db):
        """Test that order, items and extras are written and re-read."""
        result = await order_service.create_order(make_draft())

        order = result.order
        assert result.created is True
        assert order.order_number.startswith("TB-")
        assert order.status == "PENDING"
        assert order.payment_status is None
        assert order.payment_reference is None
        assert order.total == Decimal("35.99")
        assert [item.item_name for item in order.items] == ["Jollof Rice", "Small Chops"]
        assert order.items[1].variant_name == "Mini"
        assert [extra.name for extra in order.items[1].extras] == ["Dip"]
        assert order.payments == []
        assert await count(test_db, OrderItemExtra) == 1

    @pytest.mark.asyncio
    async def test_explicit_order_number(self, order_service):
        result = await order_service.create_order(make_draft(), order_number="TB-FIXED-1")

        assert result.order.order_number == "TB-FIXED-1"

    @pytest.mark.asyncio
    async def test_create_paid_order(self, order_service):
        """Test that a paid draft writes its payment ledger row."""
        result = await order_service.create_order(paid_draft("pi_paid"))

        order = result.order
        assert order.payment_status == "PAID"
        assert order.payment_reference == "pi_paid"
        assert len(order.payments) == 1
        assert order.payments[0].amount == Decimal("35.99")
        assert order.payments[0].status == "PAID"
        assert order.payments[0].gateway_response["receiptUrl"].endswith("ch_1")

    @pytest.mark.asyncio
    async def test_same_payment_reference_is_idempotent(self, order_service, test_db):
        """Test that a repeated payment reference returns the first order."""
        first = await order_service.create_order(paid_draft("pi_dup"))
        second = await order_service.create_order(paid_draft("pi_dup"))

        assert second.created is False
        assert second.order.id == first.order.id
        assert await count(test_db, Order) == 1
        assert await count(test_db, Payment) == 1

    @pytest.mark.asyncio
    async def test_invariant_violation_writes_nothing(self, order_service, test_db):
        """Test that inconsistent money figures are refused before any write."""
        with pytest.raises(OrderValidationError) as exc_info:
            await order_service.create_order(make_draft(total=Decimal("40.00")))

        assert "total: subtotal + deliveryFee + vatAmount must equal total" in exc_info.value.details
        assert await count(test_db, Order) == 0

    @pytest.mark.asyncio
    async def test_empty_items_rejected(self, order_service, test_db):
        with pytest.raises(OrderValidationError):
            await order_service.create_order(
                make_draft(items=[], subtotal=Decimal("0"), total=Decimal("2.99"))
            )

        assert await count(test_db, Order) == 0

    @pytest.mark.asyncio
    async def test_order_number_collision_regenerates(self, test_db):
        """Test that a taken order number is replaced once."""
        service = OrderPersistenceService(
            test_db, max_attempts=3, retry_delay=0, order_number_factory=lambda: "TB-NEW-1"
        )
        await service.create_order(make_draft(), order_number="TB-TAKEN")

        result = await service.create_order(make_draft(), order_number="TB-TAKEN")

        assert result.created is True
        assert result.order.order_number == "TB-NEW-1"
        assert await count(test_db, Order) == 2

    @pytest.mark.asyncio
    async def test_repeated_collision_surfaces(self, test_db):
        """Test that a second collision is not retried."""
        service = OrderPersistenceService(
            test_db, max_attempts=3, retry_delay=0, order_number_factory=lambda: "TB-TAKEN"
        )
        await service.create_order(make_draft(), order_number="TB-TAKEN")

        with pytest.raises(IntegrityError):
            await service.create_order(make_draft())

        assert await count(test_db, Order) == 1

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, order_service, test_db):
        """Test that a dropped connection during the write is retried."""
        original = order_service._write_order
        attempts = []

        async def flaky(draft, order_number):
            attempts.append(order_number)
            if len(attempts) == 1:
                raise transient_error()
            return await original(draft, order_number)

        order_service._write_order = flaky

        result = await order_service.create_order(make_draft())

        assert result.created is True
        assert len(attempts) == 2
        assert await count(test_db, Order) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_unavailable(self, test_db):
        """Test that persistent datastore failure becomes DatastoreUnavailableError."""
        service = OrderPersistenceService(test_db, max_attempts=2, retry_delay=0)
        attempts = []

        async def broken(draft, order_number):
            attempts.append(order_number)
            raise transient_error()

        service._write_order = broken

        with pytest.raises(DatastoreUnavailableError):
            await service.create_order(make_draft())

        assert len(attempts) == 2


class TestOrderLookups:
    """Test order retrieval."""

    @pytest.mark.asyncio
    async def test_get_by_number_and_reference(self, order_service):
        created = (await order_service.create_order(paid_draft("pi_look"))).order

        by_number = await order_service.get_order_by_number(created.order_number)
        by_reference = await order_service.get_order_by_payment_reference("pi_look")

        assert by_number.id == created.id
        assert by_reference.id == created.id
        assert await order_service.get_order_by_number("TB-MISSING") is None
        assert await order_service.get_order_by_id("missing") is None


class TestPaymentStatusUpdates:
    """Test out-of-band payment status changes."""

    @pytest.mark.asyncio
    async def test_mark_paid(self, order_service):
        """Test that order and ledger row move to PAID with a paid time."""
        await order_service.create_order(paid_draft("pi_pending", PaymentStatus.PENDING))

        order = await order_service.update_payment_status("pi_pending", PaymentStatus.PAID)

        assert order.payment_status == "PAID"
        assert order.paid_at is not None
        assert order.payments[0].status == "PAID"
        assert order.payments[0].processed_at is not None

    @pytest.mark.asyncio
    async def test_mark_failed(self, order_service):
        await order_service.create_order(paid_draft("pi_fail", PaymentStatus.PENDING))

        order = await order_service.update_payment_status("pi_fail", PaymentStatus.FAILED)

        assert order.payment_status == "FAILED"
        assert order.paid_at is None

    @pytest.mark.asyncio
    async def test_paid_is_final(self, order_service):
        """Test that a failure reported after settlement leaves order and ledger PAID."""
        created = (await order_service.create_order(paid_draft("pi_settled"))).order

        order = await order_service.update_payment_status("pi_settled", PaymentStatus.FAILED)

        assert order.payment_status == "PAID"
        assert order.paid_at == created.paid_at
        assert order.payments[0].status == "PAID"
        assert order.payments[0].processed_at == created.payments[0].processed_at

    @pytest.mark.asyncio
    async def test_unknown_reference(self, order_service):
        assert await order_service.update_payment_status("pi_unknown", PaymentStatus.PAID) is None


class TestOrderStatusUpdates:
    """Test lifecycle transitions through the service."""

    @pytest.mark.asyncio
    async def test_allowed_transition(self, order_service):
        order_id = (await order_service.create_order(make_draft())).order.id

        order = await order_service.update_status(order_id, OrderStatus.CONFIRMED)

        assert order.status == "CONFIRMED"

    @pytest.mark.asyncio
    async def test_rejected_transition(self, order_service):
        order_id = (await order_service.create_order(make_draft())).order.id

        with pytest.raises(InvalidStatusTransitionError):
            await order_service.update_status(order_id, OrderStatus.DELIVERED)

    @pytest.mark.asyncio
    async def test_unknown_order(self, order_service):
        with pytest.raises(OrderNotFoundError):
            await order_service.update_status("missing", OrderStatus.CONFIRMED)


class TestRetryDatabaseOperation:
    """Test the bounded retry helper."""

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failures(self):
        attempts = []

        async def operation():
            attempts.append(1)
            if len(attempts) < 3:
                raise transient_error()
            return "ok"

        assert await retry_database_operation(operation, max_attempts=3, delay=0) == "ok"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_non_transient_error_not_retried(self):
        attempts = []

        async def operation():
            attempts.append(1)
            raise ValueError("bad input")

        with pytest.raises(ValueError):
            await retry_database_operation(operation, max_attempts=3, delay=0)

        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_rollback_hook_runs_between_attempts(self):
        rollbacks = []

        async def operation():
            raise transient_error()

        async def on_retry():
            rollbacks.append(1)

        with pytest.raises(DatastoreUnavailableError):
            await retry_database_operation(operation, max_attempts=3, delay=0, on_retry=on_retry)

        assert len(rollbacks) == 2

    def test_transient_classification(self):
        integrity = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        assert is_transient_db_error(transient_error())
        assert is_transient_db_error(ConnectionError("reset"))
        assert is_transient_db_error(TimeoutError())
        assert not is_transient_db_error(integrity)
        assert not is_transient_db_error(ValueError("nope"))
