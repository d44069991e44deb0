"""Menu item and menu category schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    restaurant_id: str
    name_th: str = Field(..., min_length=1, max_length=255)
    name_en: str = Field(..., min_length=1, max_length=255)
    description_th: Optional[str] = None
    description_en: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name_th: Optional[str] = Field(default=None, min_length=1, max_length=255)
    name_en: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description_th: Optional[str] = None
    description_en: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryOut(BaseModel):
    id: str
    restaurant_id: str
    name_th: str
    name_en: str
    description_th: Optional[str] = None
    description_en: Optional[str] = None
    sort_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CategoryOrder(BaseModel):
    id: str
    sort_order: int


class CategoryReorder(BaseModel):
    restaurant_id: str
    category_orders: List[CategoryOrder]


class MenuCreate(BaseModel):
    restaurant_id: str
    category_id: Optional[str] = None
    name_th: str = Field(..., min_length=1, max_length=255)
    name_en: str = Field(..., min_length=1, max_length=255)
    description_th: Optional[str] = None
    description_en: Optional[str] = None
    price_thb: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    spice_level: Optional[int] = Field(default=None, ge=0, le=5)
    is_available: bool = True
    image_url: Optional[str] = Field(default=None, max_length=500)


class MenuUpdate(BaseModel):
    category_id: Optional[str] = None
    name_th: Optional[str] = Field(default=None, min_length=1, max_length=255)
    name_en: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description_th: Optional[str] = None
    description_en: Optional[str] = None
    price_thb: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    spice_level: Optional[int] = Field(default=None, ge=0, le=5)
    is_available: Optional[bool] = None
    image_url: Optional[str] = Field(default=None, max_length=500)


class MenuOut(BaseModel):
    id: str
    restaurant_id: str
    category_id: Optional[str] = None
    name_th: str
    name_en: str
    description_th: Optional[str] = None
    description_en: Optional[str] = None
    price_thb: Decimal
    spice_level: Optional[int] = None
    is_available: bool
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
