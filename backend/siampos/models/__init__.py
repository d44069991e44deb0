"""Database models."""

from siampos.models.restaurant import Restaurant
from siampos.models.user import User
from siampos.models.menu import Menu, MenuCategory
from siampos.models.table import DiningTable, TableStatus
from siampos.models.order import (
    CANCELLABLE_STATUSES,
    Order,
    OrderItem,
    OrderSequence,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from siampos.models.tokens import EmailVerificationToken, PasswordResetToken, RefreshTokenBlacklist

__all__ = [
    "Restaurant",
    "User",
    "Menu",
    "MenuCategory",
    "DiningTable",
    "TableStatus",
    "Order",
    "OrderItem",
    "OrderSequence",
    "OrderStatus",
    "PaymentStatus",
    "PaymentMethod",
    "CANCELLABLE_STATUSES",
    "PasswordResetToken",
    "EmailVerificationToken",
    "RefreshTokenBlacklist",
]
