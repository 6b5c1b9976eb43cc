"""Unit tests for order request models and the order validator."""
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.core.errors import OrderValidationError
from app.services.ordering.models import (
    DeliveryMethod,
    OrderConfirmation,
    OrderSubmission,
    PaymentMethod,
)
from app.services.ordering.validator import OrderValidator


class TestOrderSubmission:
    """Test request parsing."""

    def test_valid_payload(self, order_payload):
        """Test that a storefront payload parses with camelCase keys."""
        submission = OrderSubmission.model_validate(order_payload())

        assert submission.customer_name == "Ada Obi"
        assert submission.delivery_method == DeliveryMethod.STANDARD
        assert submission.payment_method == PaymentMethod.CASH
        assert submission.items[0].price == Decimal("25.0")

    def test_tags_case_insensitive(self, order_payload):
        """Test that delivery and payment tags ignore case."""
        submission = OrderSubmission.model_validate(
            order_payload(deliveryMethod="EXPRESS", paymentMethod="Stripe")
        )

        assert submission.delivery_method == DeliveryMethod.EXPRESS
        assert submission.payment_method == PaymentMethod.STRIPE

    def test_numeric_strings_and_numeric_ids(self, order_payload):
        """Test that numbers may arrive as strings and ids as numbers."""
        submission = OrderSubmission.model_validate(
            order_payload(
                items=[
                    {
                        "id": 7,
                        "name": "Small Chops",
                        "price": "12.50",
                        "quantity": 2,
                        "measurement": 2,
                        "measurementType": "tray",
                        "extras": [{"id": 3, "name": "Dip", "price": "1.00"}],
                    }
                ],
                subtotal="27.00",
            )
        )

        item = submission.items[0]
        assert item.id == "7"
        assert item.price == Decimal("12.50")
        assert item.measurement == "2"
        assert item.extras[0].id == "3"
        assert submission.subtotal == Decimal("27.00")

    def test_empty_items_rejected(self, order_payload):
        with pytest.raises(ValidationError) as exc_info:
            OrderSubmission.model_validate(order_payload(items=[]))

        assert "At least one item is required" in str(exc_info.value)

    def test_unknown_payment_method_rejected(self, order_payload):
        with pytest.raises(ValidationError):
            OrderSubmission.model_validate(order_payload(paymentMethod="barter"))

    def test_short_phone_rejected(self, order_payload):
        with pytest.raises(ValidationError):
            OrderSubmission.model_validate(order_payload(customerPhone="12345"))

    def test_confirmation_carries_customer_id(self, order_payload):
        """Test the post-payment body shape."""
        confirmation = OrderConfirmation.model_validate(
            {"paymentIntentId": "pi_1", "orderData": order_payload(customerId="cus_9")}
        )

        assert confirmation.payment_intent_id == "pi_1"
        assert confirmation.order_data.customer_id == "cus_9"


class TestOrderValidator:
    """Test server-side pricing of submissions."""

    def test_price_ignores_client_totals(self, order_payload, pricing_config):
        """Test that the server recomputes totals from lines."""
        submission = OrderSubmission.model_validate(order_payload(total=1.00))

        breakdown = OrderValidator(pricing_config).price(submission)

        assert breakdown.total == Decimal("27.99")

    def test_find_discrepancies(self, order_payload, pricing_config):
        """Test that differing client figures are listed."""
        submission = OrderSubmission.model_validate(order_payload(deliveryFee=3.00, total=28.00))
        validator = OrderValidator(pricing_config)

        discrepancies = validator.find_discrepancies(submission, validator.price(submission))

        assert len(discrepancies) == 2
        assert discrepancies[0].startswith("deliveryFee:")

    def test_no_discrepancies_when_matching(self, order_payload, pricing_config):
        submission = OrderSubmission.model_validate(order_payload())
        validator = OrderValidator(pricing_config)

        assert validator.find_discrepancies(submission, validator.price(submission)) == []

    def test_inconsistent_client_totals_rejected(self, order_payload, pricing_config):
        """Test that figures which do not add up are refused."""
        submission = OrderSubmission.model_validate(order_payload(total=30.00))

        with pytest.raises(OrderValidationError) as exc_info:
            OrderValidator(pricing_config).require_consistent_client_totals(submission)

        assert exc_info.value.message == "Invalid totals"
