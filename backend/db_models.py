"""
SQLAlchemy ORM models for the Order Ledger.

Tables:
    users        — customers (read-only from the order engine's perspective)
    products     — priced items with non-negative stock
    orders       — one per checkout, status + snapshot total
    order_items  — line items with the price captured at order time
    payments     — at most one per order

All foreign keys restrict deletion of referenced rows.
"""
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey,
    CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from database import Base
from domain.enums import OrderStatus


class User(Base):
    """Customer account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    orders = relationship("Order", back_populates="user", lazy="select")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    )


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)  # see OrderStatus
    total_amount = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", lazy="select", order_by="OrderItem.id")
    payment = relationship("Payment", back_populates="order", uselist=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'shipped', 'delivered', 'cancelled')",
            name="ck_orders_status",
        ),
        # For per-user order history: filter by user_id, order by created_at DESC
        Index("ix_orders_user_created", "user_id", "created_at"),
    )


class OrderItem(Base):
    """Immutable line item; `price` is the product price at order time."""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="RESTRICT"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    # Relationships
    order = relationship("Order", back_populates="items")
    product = relationship("Product", lazy="select")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="RESTRICT"), unique=True, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False)  # "succeeded" | "failed"
    reference = Column(String(128), nullable=True)  # authorizer's transaction reference
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    order = relationship("Order", back_populates="payment")

    __table_args__ = (
        CheckConstraint("status IN ('succeeded', 'failed')", name="ck_payments_status"),
    )
