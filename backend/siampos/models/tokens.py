"""Single-use auth tokens and the refresh-token blacklist."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from siampos.db.base import Base, UUIDPrimaryKeyMixin, utcnow


class _SingleUseToken(UUIDPrimaryKeyMixin):
    token: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return not self.used and self.expires_at > (now or utcnow())


class PasswordResetToken(Base, _SingleUseToken):
    __tablename__ = "password_reset_tokens"


class EmailVerificationToken(Base, _SingleUseToken):
    __tablename__ = "email_verification_tokens"


class RefreshTokenBlacklist(Base, UUIDPrimaryKeyMixin):
    """Refresh tokens that were logged out or rotated."""

    __tablename__ = "refresh_token_blacklist"

    token: Mapped[str] = mapped_column(String(1024), unique=True, index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # The blacklisted token's own exp claim; rows past it can be pruned
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
