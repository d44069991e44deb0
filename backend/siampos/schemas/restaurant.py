"""Restaurant schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

TAX_ID_PATTERN = r"^[0-9]{13}$"


class RestaurantCreate(BaseModel):
    name_th: str = Field(..., min_length=1, max_length=255)
    name_en: str = Field(..., min_length=1, max_length=255)
    address_th: Optional[str] = None
    address_en: Optional[str] = None
    tax_id: str = Field(..., pattern=TAX_ID_PATTERN)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None
    promptpay_id: Optional[str] = Field(default=None, max_length=20)


class RestaurantUpdate(BaseModel):
    name_th: Optional[str] = Field(default=None, min_length=1, max_length=255)
    name_en: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address_th: Optional[str] = None
    address_en: Optional[str] = None
    tax_id: Optional[str] = Field(default=None, pattern=TAX_ID_PATTERN)
    phone: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None
    promptpay_id: Optional[str] = Field(default=None, max_length=20)


class RestaurantOut(BaseModel):
    id: str
    name_th: str
    name_en: str
    address_th: Optional[str] = None
    address_en: Optional[str] = None
    tax_id: str
    phone: Optional[str] = None
    email: Optional[str] = None
    promptpay_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaxIdValidationRequest(BaseModel):
    tax_id: str
