"""Dining table model."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from sqlalchemy import Enum as SQLEnum, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from siampos.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from siampos.models.validators import positive


class TableStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    OCCUPIED = "OCCUPIED"
    RESERVED = "RESERVED"
    CLEANING = "CLEANING"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"


class DiningTable(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Restaurant table for seating, positioned on the floor plan."""

    __tablename__ = "tables"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "table_number", name="uq_tables_restaurant_number"),
    )

    restaurant_id: Mapped[str] = mapped_column(
        ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    table_number: Mapped[str] = mapped_column(String(20), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    location_x: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    location_y: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    status: Mapped[TableStatus] = mapped_column(
        SQLEnum(TableStatus, name="table_status"),
        default=TableStatus.AVAILABLE,
        nullable=False,
    )

    orders: Mapped[List["Order"]] = relationship("Order", back_populates="table")

    @validates("capacity")
    def _validate_capacity(self, key, value):
        return positive(key, value)


from siampos.models.order import Order
