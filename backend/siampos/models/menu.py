"""Menu and menu category models."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from siampos.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from siampos.models.validators import in_range, positive


class MenuCategory(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Grouping of menu items, ordered by sort_order then Thai name."""

    __tablename__ = "menu_categories"

    restaurant_id: Mapped[str] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name_th: Mapped[str] = mapped_column(String(255), nullable=False)
    name_en: Mapped[str] = mapped_column(String(255), nullable=False)
    description_th: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description_en: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    menus: Mapped[List["Menu"]] = relationship("Menu", back_populates="category")


class Menu(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A dish or drink offered by a restaurant."""

    __tablename__ = "menus"

    restaurant_id: Mapped[str] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("menu_categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name_th: Mapped[str] = mapped_column(String(255), nullable=False)
    name_en: Mapped[str] = mapped_column(String(255), nullable=False)
    description_th: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description_en: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price_thb: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    spice_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    restaurant: Mapped["Restaurant"] = relationship("Restaurant", back_populates="menus")
    category: Mapped[Optional["MenuCategory"]] = relationship("MenuCategory", back_populates="menus")

    @validates("price_thb")
    def _validate_price(self, key, value):
        return positive(key, value)

    @validates("spice_level")
    def _validate_spice_level(self, key, value):
        return in_range(key, value, 0, 5)


from siampos.models.restaurant import Restaurant
