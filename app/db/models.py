"""Database models."""
import uuid
from datetime import datetime
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Text,
    JSON,
    Numeric,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

MONEY = Numeric(10, 2)


def _new_id() -> str:
    return uuid.uuid4().hex


class Order(Base):
    """Order model. Customer and pricing fields are snapshots taken at order time."""

    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=_new_id)
    order_number = Column(String(40), unique=True, index=True, nullable=False)

    # Customer snapshot
    customer_id = Column(String, nullable=True)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    delivery_address = Column(Text, nullable=False)
    delivery_city = Column(String, nullable=False)
    special_instructions = Column(Text, nullable=True)

    # Commercial
    subtotal = Column(MONEY, nullable=False)
    delivery_fee = Column(MONEY, nullable=False)
    vat_rate = Column(Numeric(5, 2), nullable=False, default=0)
    vat_amount = Column(MONEY, nullable=False, default=0)
    total = Column(MONEY, nullable=False)

    # Fulfillment
    delivery_method = Column(String(20), nullable=False)  # STANDARD, EXPRESS
    status = Column(String(20), default="PENDING", nullable=False)
    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), nullable=True)  # PENDING, PROCESSING, PAID, FAILED
    payment_reference = Column(String, unique=True, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    payments = relationship(
        "Payment",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="Payment.id",
    )


class OrderItem(Base):
    """Order item model."""

    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, index=True)
    item_name = Column(String, nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    price = Column(MONEY, nullable=False)  # unit price actually charged
    variant_name = Column(String, nullable=True)
    measurement = Column(String, nullable=True)
    measurement_type = Column(String, nullable=True)

    # Relationships
    order = relationship("Order", back_populates="items")
    extras = relationship(
        "OrderItemExtra",
        back_populates="order_item",
        cascade="all, delete-orphan",
        order_by="OrderItemExtra.id",
    )


class OrderItemExtra(Base):
    """Add-on attached to an order item."""

    __tablename__ = "order_item_extras"

    id = Column(Integer, primary_key=True, index=True)
    order_item_id = Column(Integer, ForeignKey("order_items.id"), nullable=False, index=True)
    extra_item_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    price = Column(MONEY, nullable=False)
    quantity = Column(Integer, default=1, nullable=False)

    # Relationships
    order_item = relationship("OrderItem", back_populates="extras")


class Payment(Base):
    """Ledger row for one reconciliation with the payment authority."""

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(32), ForeignKey("orders.id"), nullable=False, index=True)
    payment_reference = Column(String, nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    currency = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False)  # PENDING, PROCESSING, PAID, FAILED
    payment_method = Column(String(20), nullable=False)
    gateway = Column(String(20), nullable=False)
    gateway_response = Column(JSON, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="payments")


class SiteSetting(Base):
    """Admin-managed key/value setting (delivery fees, VAT)."""

    __tablename__ = "site_settings"

    key = Column(String(100), primary_key=True)
    value = Column(String, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
