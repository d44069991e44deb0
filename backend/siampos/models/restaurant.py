"""Restaurant (tenant) model."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from siampos.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Restaurant(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A restaurant. Every user, menu, table and order belongs to exactly one."""

    __tablename__ = "restaurants"

    name_th: Mapped[str] = mapped_column(String(255), nullable=False)
    name_en: Mapped[str] = mapped_column(String(255), nullable=False)
    address_th: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address_en: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tax_id: Mapped[str] = mapped_column(String(13), unique=True, index=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # Mobile number, tax id or e-wallet id receiving PromptPay payments
    promptpay_id: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    users: Mapped[List["User"]] = relationship("User", back_populates="restaurant")
    menus: Mapped[List["Menu"]] = relationship("Menu", back_populates="restaurant")
    orders: Mapped[List["Order"]] = relationship("Order", back_populates="restaurant")


from siampos.models.user import User
from siampos.models.menu import Menu
from siampos.models.order import Order
