"""Unit tests for the Paystack webhook endpoint and signature verification."""
import hashlib
import hmac
import json
from decimal import Decimal

import pytest

from app.core.config import settings
from app.services.ordering.status import PaymentStatus
from app.services.payments.webhook import WebhookSignatureError, verify_paystack_signature
from app.services.persistence.models import OrderDraft, OrderItemDraft, PaymentDraft

SECRET = "sk_test_ps"


def sign(body: bytes, secret: str = SECRET) -> dict:
    digest = hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()
    return {"x-paystack-signature": digest}


def event(event_type: str, reference: str = "ps_hook") -> bytes:
    return json.dumps(
        {"event": event_type, "data": {"reference": reference, "status": "success"}}
    ).encode()


async def create_pending_paystack_order(order_service, reference: str = "ps_hook"):
    draft = OrderDraft(
        customer_name="Ada Obi",
        customer_email="ada@example.com",
        customer_phone="+2348012345678",
        delivery_address="12 Admiralty Way, Lekki",
        delivery_city="Lagos",
        subtotal=Decimal("25.00"),
        delivery_fee=Decimal("2.99"),
        total=Decimal("27.99"),
        delivery_method="STANDARD",
        payment_method="PAYSTACK",
        payment_status=PaymentStatus.PENDING,
        payment_reference=reference,
        items=[OrderItemDraft(item_name="Jollof Rice", quantity=1, price=Decimal("25.00"))],
        payment=PaymentDraft(
            reference=reference,
            amount=Decimal("27.99"),
            currency="ngn",
            status=PaymentStatus.PENDING,
            payment_method="paystack",
            gateway="paystack",
        ),
    )
    return (await order_service.create_order(draft)).order


@pytest.fixture
def paystack_secret(monkeypatch):
    monkeypatch.setattr(settings, "paystack_secret_key", SECRET)
    return SECRET


class TestVerifyPaystackSignature:
    def test_valid_signature(self):
        body = b'{"event": "charge.success"}'

        verify_paystack_signature(body, sign(body)["x-paystack-signature"], SECRET)

    def test_wrong_secret(self):
        body = b'{"event": "charge.success"}'

        with pytest.raises(WebhookSignatureError):
            verify_paystack_signature(body, sign(body, "sk_other")["x-paystack-signature"], SECRET)

    @pytest.mark.parametrize("header", [None, ""])
    def test_missing_header(self, header):
        with pytest.raises(WebhookSignatureError):
            verify_paystack_signature(b"{}", header, SECRET)


class TestPaystackWebhook:
    """Test POST /webhooks/paystack."""

    @pytest.mark.asyncio
    async def test_charge_success(self, async_client, paystack_secret, order_service):
        await create_pending_paystack_order(order_service)
        body = event("charge.success")

        response = await async_client.post("/webhooks/paystack", content=body, headers=sign(body))

        assert response.status_code == 200
        assert response.json() == {"received": True}
        order = await order_service.get_order_by_payment_reference("ps_hook")
        assert order.payment_status == "PAID"
        assert order.payments[0].status == "PAID"

    @pytest.mark.asyncio
    async def test_charge_failed_after_success_is_ignored(
        self, async_client, paystack_secret, order_service
    ):
        await create_pending_paystack_order(order_service)
        success = event("charge.success")
        failed = event("charge.failed")

        await async_client.post("/webhooks/paystack", content=success, headers=sign(success))
        await async_client.post("/webhooks/paystack", content=failed, headers=sign(failed))

        order = await order_service.get_order_by_payment_reference("ps_hook")
        assert order.payment_status == "PAID"

    @pytest.mark.asyncio
    async def test_charge_failed(self, async_client, paystack_secret, order_service):
        await create_pending_paystack_order(order_service)
        body = event("charge.failed")

        response = await async_client.post("/webhooks/paystack", content=body, headers=sign(body))

        assert response.status_code == 200
        order = await order_service.get_order_by_payment_reference("ps_hook")
        assert order.payment_status == "FAILED"

    @pytest.mark.asyncio
    async def test_unhandled_event_acknowledged(self, async_client, paystack_secret):
        body = event("transfer.success")

        response = await async_client.post("/webhooks/paystack", content=body, headers=sign(body))

        assert response.status_code == 200
        assert response.json() == {"received": True}

    @pytest.mark.asyncio
    async def test_missing_reference_acknowledged(self, async_client, paystack_secret):
        body = json.dumps({"event": "charge.success", "data": "junk"}).encode()

        response = await async_client.post("/webhooks/paystack", content=body, headers=sign(body))

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_missing_signature(self, async_client, paystack_secret):
        response = await async_client.post("/webhooks/paystack", content=event("charge.success"))

        assert response.status_code == 400
        assert response.json() == {"error": "Missing x-paystack-signature header"}

    @pytest.mark.asyncio
    async def test_invalid_signature(self, async_client, paystack_secret):
        body = event("charge.success")

        response = await async_client.post(
            "/webhooks/paystack", content=body, headers=sign(body, "sk_other")
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid signature"}

    @pytest.mark.asyncio
    async def test_secret_not_configured(self, async_client, monkeypatch):
        monkeypatch.setattr(settings, "paystack_secret_key", None)
        body = event("charge.success")

        response = await async_client.post("/webhooks/paystack", content=body, headers=sign(body))

        assert response.status_code == 500
