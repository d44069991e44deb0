"""User schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from siampos.core.rbac import UserRole


class UserOut(BaseModel):
    """User response schema. Never carries the password hash."""

    id: str
    email: str
    role: UserRole
    restaurant_id: str
    name_th: Optional[str] = None
    name_en: Optional[str] = None
    is_active: bool
    is_email_verified: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    id: str
    email: str
    role: UserRole
    name_th: Optional[str] = None
    name_en: Optional[str] = None

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    name_th: Optional[str] = Field(default=None, max_length=255)
    name_en: Optional[str] = Field(default=None, max_length=255)
