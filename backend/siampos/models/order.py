"""Order and order item models."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import Enum as SQLEnum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from siampos.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from siampos.models.validators import non_negative, positive


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COOKING = "COOKING"
    READY = "READY"
    SERVED = "SERVED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    PROMPTPAY = "PROMPTPAY"
    TRUEMONEY = "TRUEMONEY"
    SCB_EASY = "SCB_EASY"
    CREDIT_CARD = "CREDIT_CARD"
    LINE_PAY = "LINE_PAY"
    AIRPAY = "AIRPAY"


# Statuses from which an order may still be cancelled
CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.COOKING})


class Order(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A customer order. Orders are never deleted; cancellation is a status."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "order_number", name="uq_orders_restaurant_number"),
    )

    restaurant_id: Mapped[str] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    table_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("tables.id", ondelete="SET NULL"), nullable=True, index=True
    )
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    order_number: Mapped[str] = mapped_column(String(20), nullable=False)
    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    service_charge: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    payment_method: Mapped[Optional[PaymentMethod]] = mapped_column(
        SQLEnum(PaymentMethod, name="payment_method"), nullable=True
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, name="payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus, name="order_status"),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    restaurant: Mapped["Restaurant"] = relationship("Restaurant", back_populates="orders")
    table: Mapped[Optional["DiningTable"]] = relationship("DiningTable", back_populates="orders")
    user: Mapped["User"] = relationship("User")
    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    @validates("subtotal", "tax", "service_charge", "total")
    def _validate_amounts(self, key, value):
        return non_negative(key, value)


class OrderItem(Base, UUIDPrimaryKeyMixin):
    """A line on an order. The unit price is a snapshot taken at order time."""

    __tablename__ = "order_items"

    order_id: Mapped[str] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_id: Mapped[str] = mapped_column(ForeignKey("menus.id"), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    menu: Mapped["Menu"] = relationship("Menu")

    @validates("quantity", "unit_price")
    def _validate_positive(self, key, value):
        return positive(key, value)


class OrderSequence(Base):
    """Last order number handed out per restaurant and business day.

    Incremented in the same transaction that inserts the order, so the row
    lock serializes concurrent numbering.
    """

    __tablename__ = "order_sequences"

    restaurant_id: Mapped[str] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), primary_key=True
    )
    business_date: Mapped[str] = mapped_column(String(8), primary_key=True)
    last_seq: Mapped[int] = mapped_column(Integer, nullable=False)


from siampos.models.menu import Menu
from siampos.models.restaurant import Restaurant
from siampos.models.table import DiningTable
from siampos.models.user import User
