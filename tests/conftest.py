"""Shared test fixtures and configuration."""
import os
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing app
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")

from app.main import app
from app.db.database import get_db
from app.db.models import Base
from app.core.dependencies import (
    get_notification_fanout,
    get_order_service,
    get_payment_authority,
    get_paystack_authority,
    get_pricing_config_provider,
)
from app.services.notifications.email import EmailSender
from app.services.notifications.fanout import NotificationFanout
from app.services.notifications.invoice import InvoiceGenerator
from app.services.notifications.payload import DeliveryResult, OrderNotification
from app.services.notifications.sms import SmsSender
from app.services.payments.base import ChargeAuthority, TransactionAuthority
from app.services.persistence.orders import OrderPersistenceService
from app.services.settings.provider import PricingConfig, StaticPricingConfigProvider


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeEmailSender(EmailSender):
    """Records emails instead of sending them."""

    def __init__(self, fail_admin: bool = False, fail_customer: bool = False):
        self.fail_admin = fail_admin
        self.fail_customer = fail_customer
        self.admin_notifications: List[OrderNotification] = []
        self.confirmations: List[Dict[str, Any]] = []

    async def send_new_order_notification(self, order: OrderNotification) -> DeliveryResult:
        if self.fail_admin:
            raise RuntimeError("SMTP connection refused")
        self.admin_notifications.append(order)
        return DeliveryResult(success=True, message_id="admin-1")

    async def send_order_confirmation(
        self, order: OrderNotification, invoice_pdf: Optional[bytes] = None
    ) -> DeliveryResult:
        if self.fail_customer:
            raise RuntimeError("SMTP connection refused")
        self.confirmations.append({"order": order, "invoice_pdf": invoice_pdf})
        return DeliveryResult(success=True, message_id="customer-1")


class FakeSmsSender(SmsSender):
    """Records SMS alerts instead of sending them."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[OrderNotification] = []

    async def send_new_order_notification(self, order: OrderNotification) -> DeliveryResult:
        if self.fail:
            raise RuntimeError("Twilio unavailable")
        self.sent.append(order)
        return DeliveryResult(success=True, message_id="SM123")


class FakeInvoiceGenerator(InvoiceGenerator):
    """Returns a fixed document instead of rendering one."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.generated: List[str] = []

    async def generate(self, order: OrderNotification) -> bytes:
        if self.fail:
            raise RuntimeError("renderer crashed")
        self.generated.append(order.order_number)
        return b"%PDF-1.4 fake"


class FakePaymentAuthority(ChargeAuthority):
    """Payment authority returning canned Stripe-shaped responses."""

    name = "stripe"

    def __init__(
        self,
        intent: Optional[Dict[str, Any]] = None,
        charges: Optional[List[Dict[str, Any]]] = None,
        charge: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
    ):
        self.intent = intent
        self.charges = charges or []
        self.charge = charge
        self.error = error
        self.calls: List[str] = []

    async def retrieve_payment_intent(self, reference: str) -> Optional[Dict[str, Any]]:
        self.calls.append(f"intent:{reference}")
        if self.error:
            raise self.error
        return self.intent

    async def list_charges(self, reference: str, limit: int = 1) -> List[Dict[str, Any]]:
        self.calls.append(f"charges:{reference}")
        if self.error:
            raise self.error
        return self.charges

    async def retrieve_charge(self, charge_id: str) -> Optional[Dict[str, Any]]:
        self.calls.append(f"charge:{charge_id}")
        if self.error:
            raise self.error
        return self.charge


def succeeded_intent(reference: str = "pi_123", amount: int = 2987) -> Dict[str, Any]:
    """Stripe payment intent in its settled state."""
    return {
        "id": reference,
        "object": "payment_intent",
        "amount": amount,
        "currency": "ngn",
        "status": "succeeded",
        "latest_charge": "ch_123",
    }


def settled_charge() -> Dict[str, Any]:
    return {
        "id": "ch_123",
        "object": "charge",
        "receipt_url": "https://pay.stripe.com/receipts/ch_123",
        "created": 1760000000,
    }


class FakePaystackAuthority(TransactionAuthority):
    """Payment authority returning a canned Paystack transaction."""

    name = "paystack"

    def __init__(
        self, transaction: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None
    ):
        self.transaction = transaction
        self.error = error
        self.calls: List[str] = []

    async def verify_transaction(self, reference: str) -> Optional[Dict[str, Any]]:
        self.calls.append(f"verify:{reference}")
        if self.error:
            raise self.error
        return self.transaction


def paystack_transaction(
    reference: str = "ps_ref_123", amount: int = 2799, status: str = "success"
) -> Dict[str, Any]:
    """Paystack transaction as returned by /transaction/verify."""
    return {
        "id": 4099260516,
        "reference": reference,
        "status": status,
        "amount": amount,
        "currency": "NGN",
        "paid_at": "2025-10-09T08:53:20.000Z",
        "channel": "card",
    }


@pytest.fixture
async def test_db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_db(test_db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture
def pricing_config():
    """Pricing used across tests: 2.99 standard, 5.00 express, VAT off."""
    return PricingConfig(
        standard_delivery_fee=Decimal("2.99"),
        express_delivery_fee=Decimal("5.00"),
        vat_enabled=False,
        vat_rate=Decimal("7.5"),
    )


@pytest.fixture
def order_service(test_db):
    """Order persistence service without retry delays."""
    return OrderPersistenceService(test_db, max_attempts=3, retry_delay=0)


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def sms_sender():
    return FakeSmsSender()


@pytest.fixture
def invoice_generator():
    return FakeInvoiceGenerator()


@pytest.fixture
def fanout(email_sender, sms_sender, invoice_generator):
    return NotificationFanout(email_sender, sms_sender, invoice_generator)


@pytest.fixture
def payment_authority():
    return FakePaymentAuthority(intent=succeeded_intent(), charge=settled_charge())


@pytest.fixture
def paystack_authority():
    return FakePaystackAuthority(transaction=paystack_transaction())


@pytest.fixture
def fakes():
    """Fake collaborator classes and canned payment authority payloads."""
    return SimpleNamespace(
        EmailSender=FakeEmailSender,
        SmsSender=FakeSmsSender,
        InvoiceGenerator=FakeInvoiceGenerator,
        PaymentAuthority=FakePaymentAuthority,
        PaystackAuthority=FakePaystackAuthority,
        succeeded_intent=succeeded_intent,
        settled_charge=settled_charge,
        paystack_transaction=paystack_transaction,
    )


@pytest.fixture
def order_payload():
    """Factory for a valid storefront order body (camelCase)."""

    def _make(**overrides) -> Dict[str, Any]:
        payload = {
            "customerName": "Ada Obi",
            "customerEmail": "ada@example.com",
            "customerPhone": "+2348012345678",
            "deliveryAddress": "12 Admiralty Way, Lekki",
            "deliveryCity": "Lagos",
            "deliveryMethod": "standard",
            "paymentMethod": "cash",
            "items": [
                {"id": "jollof-1", "name": "Jollof Rice", "price": 25.00, "quantity": 1}
            ],
            "subtotal": 25.00,
            "deliveryFee": 2.99,
            "vatAmount": 0,
            "total": 27.99,
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
async def async_client(test_db, pricing_config, fanout, payment_authority, paystack_authority):
    """HTTP client for the app with database and collaborators overridden."""

    async def _override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_pricing_config_provider] = lambda: StaticPricingConfigProvider(
        pricing_config
    )
    app.dependency_overrides[get_order_service] = lambda: OrderPersistenceService(
        test_db, max_attempts=3, retry_delay=0
    )
    app.dependency_overrides[get_payment_authority] = lambda: payment_authority
    app.dependency_overrides[get_paystack_authority] = lambda: paystack_authority
    app.dependency_overrides[get_notification_fanout] = lambda: fanout

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    await fanout.drain(timeout=5)
    # Clear overrides
    app.dependency_overrides.clear()
