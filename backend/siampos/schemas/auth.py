"""Authentication schemas.

Request bodies keep the camelCase keys (``refreshToken``, ``newPassword``,
``currentPassword``) used by the web client.
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from siampos.core.rbac import UserRole

MIN_PASSWORD_LENGTH = 8


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)
    restaurant_id: str
    name_th: Optional[str] = Field(default=None, max_length=255)
    name_en: Optional[str] = Field(default=None, max_length=255)
    role: UserRole = UserRole.STAFF


class LoginRequest(BaseModel):
    """Login request body."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refreshToken: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    refreshToken: Optional[str] = None


class EmailRequest(BaseModel):
    """Body of forgot-password and send-verification."""

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    currentPassword: str = Field(..., min_length=1, max_length=128)
    newPassword: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)
