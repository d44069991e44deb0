"""Order schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from siampos.core.config import settings
from siampos.models.order import OrderStatus, PaymentMethod, PaymentStatus
from siampos.schemas.table import TableSummary
from siampos.schemas.user import UserSummary


class OrderItemCreate(BaseModel):
    menu_id: str
    quantity: int = Field(..., gt=0)
    unit_price_thb: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    notes: Optional[str] = None


class OrderCreate(BaseModel):
    """Order creation body.

    An empty ``order_items`` list is rejected by the order service with
    "Order must have at least one item".
    """

    restaurant_id: str
    table_id: Optional[str] = None
    # Defaults to the authenticated caller
    user_id: Optional[str] = None
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = None
    order_items: List[OrderItemCreate]
    payment_method: Optional[PaymentMethod] = None
    service_charge_percentage: Decimal = Field(
        default=Decimal(settings.default_service_charge_percentage), ge=0, le=20
    )
    tax_rate: Decimal = Field(default=Decimal(settings.default_tax_rate), ge=0, le=20)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class PaymentUpdate(BaseModel):
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None


class OrderCancel(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class MenuSummary(BaseModel):
    id: str
    name_th: str
    name_en: str
    price_thb: Decimal
    image_url: Optional[str] = None

    model_config = {"from_attributes": True}


class OrderItemOut(BaseModel):
    id: str
    menu_id: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    notes: Optional[str] = None
    menu: Optional[MenuSummary] = None

    model_config = {"from_attributes": True}


class OrderOut(BaseModel):
    id: str
    restaurant_id: str
    table_id: Optional[str] = None
    user_id: str
    order_number: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    subtotal: Decimal
    tax: Decimal
    service_charge: Decimal
    total: Decimal
    payment_method: Optional[PaymentMethod] = None
    payment_status: PaymentStatus
    status: OrderStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut] = []
    table: Optional[TableSummary] = None
    user: Optional[UserSummary] = None

    model_config = {"from_attributes": True}


class OrderStats(BaseModel):
    total_orders: int
    total_revenue: Decimal
    pending_orders: int
    completed_orders: int
    cancelled_orders: int
    average_order_value: Decimal


class PromptPayQROut(BaseModel):
    order_id: str
    order_number: str
    amount: Decimal
    payload: str
    format: Literal["png", "svg"]
    # base64 PNG or raw SVG markup
    image: str
