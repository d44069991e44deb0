"""Security utilities: JWT tokens, password hashing and opaque one-time tokens."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt
from jwt.exceptions import ExpiredSignatureError, PyJWTError

from siampos.core.config import settings
from siampos.core.errors import AuthenticationError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hash.

    Uses bcrypt's built-in timing-safe comparison.
    """
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except Exception as e:
        logger.warning(f"Password verification error: {e}")
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt()
    ).decode('utf-8')


def _encode(user_id: str, token_type: str, secret: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
        "jti": secrets.token_urlsafe(16),
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """Create a short-lived access JWT signed with the access secret."""
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    return _encode(user_id, ACCESS_TOKEN_TYPE, settings.jwt_secret, lifetime)


def create_refresh_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """Create a long-lived refresh JWT signed with the refresh secret."""
    lifetime = expires_delta or timedelta(days=settings.refresh_token_expire_days)
    return _encode(user_id, REFRESH_TOKEN_TYPE, settings.jwt_refresh_secret, lifetime)


def create_token_pair(user_id: str) -> dict[str, str]:
    return {
        "accessToken": create_access_token(user_id),
        "refreshToken": create_refresh_token(user_id),
    }


def _decode(token: str, secret: str, token_type: str, verify_exp: bool = True) -> dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat"], "verify_exp": verify_exp},
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Token expired", code="TOKEN_EXPIRED")
    except PyJWTError as e:
        logger.debug(f"JWT decode error: {e}")
        raise AuthenticationError("Invalid token", code="INVALID_TOKEN")

    if payload.get("type") != token_type or not payload.get("userId"):
        raise AuthenticationError("Invalid token", code="INVALID_TOKEN")
    return payload


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises AuthenticationError with code TOKEN_EXPIRED or INVALID_TOKEN.
    """
    return _decode(token, settings.jwt_secret, ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str, verify_exp: bool = True) -> dict[str, Any]:
    """Decode and validate a refresh token.

    With ``verify_exp=False`` the signature is still checked but an expired
    token is accepted, so its ``exp`` can be read when blacklisting on logout.
    """
    return _decode(token, settings.jwt_refresh_secret, REFRESH_TOKEN_TYPE, verify_exp=verify_exp)


def generate_opaque_token() -> str:
    """Random URL-safe token for password reset and email verification links."""
    return secrets.token_urlsafe(32)
