"""Authentication service: accounts, token pairs and single-use tokens.

Password-reset and email-verification tokens are opaque random strings
stored server side. Issuing one deletes the user's earlier tokens of the
same kind; redeeming one is a conditional UPDATE so a token can succeed
only once even under concurrent requests.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Type, Union

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from siampos.core.config import settings
from siampos.core.email import EmailService
from siampos.core.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from siampos.core.security import (
    create_token_pair,
    decode_refresh_token,
    generate_opaque_token,
    get_password_hash,
    verify_password,
)
from siampos.db.base import utcnow
from siampos.models.restaurant import Restaurant
from siampos.models.tokens import EmailVerificationToken, PasswordResetToken, RefreshTokenBlacklist
from siampos.models.user import User

logger = logging.getLogger("auth")

SingleUseToken = Union[PasswordResetToken, EmailVerificationToken]

# Used tokens are kept this long before the sweep removes them
USED_TOKEN_RETENTION = timedelta(hours=24)


def _invalid_token() -> AuthenticationError:
    return AuthenticationError("Invalid token", code="INVALID_TOKEN")


def _find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.lower()).first()


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

def register_user(db: Session, data, email_service: EmailService) -> tuple[User, dict]:
    email = data.email.lower()
    if _find_user_by_email(db, email) is not None:
        raise ConflictError("User already exists", code="EMAIL_EXISTS")
    if db.get(Restaurant, data.restaurant_id) is None:
        raise NotFoundError("Restaurant not found", code="RESTAURANT_NOT_FOUND")

    user = User(
        email=email,
        password_hash=get_password_hash(data.password),
        restaurant_id=data.restaurant_id,
        name_th=data.name_th,
        name_en=data.name_en,
        role=data.role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id} ({user.role.value}) for restaurant {user.restaurant_id}")

    token = _issue_token(
        db, EmailVerificationToken, user, timedelta(hours=settings.email_verification_expire_hours)
    )
    email_service.send_email_verification(user.email, token)
    return user, create_token_pair(user.id)


def authenticate_user(db: Session, email: str, password: str) -> tuple[User, dict]:
    """Check credentials; unknown email and wrong password fail identically."""
    user = _find_user_by_email(db, email)
    if user is None or not user.is_active or not verify_password(password, user.password_hash):
        logger.warning(f"Failed login attempt for {email}")
        raise AuthenticationError("Invalid credentials", code="INVALID_CREDENTIALS")

    user.last_login_at = utcnow()
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} logged in")
    return user, create_token_pair(user.id)


def update_profile(db: Session, user_id: str, data) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user_id: str, current_password: str, new_password: str) -> None:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found", code="USER_NOT_FOUND")
    if not verify_password(current_password, user.password_hash):
        raise AuthenticationError("Current password is incorrect", code="INVALID_PASSWORD")
    user.password_hash = get_password_hash(new_password)
    db.commit()
    logger.info(f"User {user.id} changed password")


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------

def _is_blacklisted(db: Session, token: str) -> bool:
    return db.query(RefreshTokenBlacklist.id).filter(RefreshTokenBlacklist.token == token).first() is not None


def _exp_as_naive_utc(payload: dict) -> datetime:
    return datetime.fromtimestamp(payload["exp"], tz=timezone.utc).replace(tzinfo=None)


def refresh_session(db: Session, refresh_token: str) -> dict:
    """Exchange a refresh token for a new pair, blacklisting the old one."""
    payload = decode_refresh_token(refresh_token)
    if _is_blacklisted(db, refresh_token):
        logger.warning(f"Blacklisted refresh token presented for user {payload['userId']}")
        raise _invalid_token()

    user = db.get(User, payload["userId"])
    if user is None or not user.is_active:
        raise AuthenticationError("User not found", code="USER_NOT_FOUND")

    db.add(
        RefreshTokenBlacklist(
            token=refresh_token,
            user_id=user.id,
            expires_at=_exp_as_naive_utc(payload),
        )
    )
    try:
        db.commit()
    except IntegrityError:
        # Concurrent refresh with the same token already consumed it
        db.rollback()
        raise _invalid_token()
    return create_token_pair(user.id)


def logout(db: Session, refresh_token: Optional[str]) -> None:
    """Blacklist ``refresh_token`` if it carries a valid signature.

    Expired, malformed and already-blacklisted tokens are ignored.
    """
    if not refresh_token:
        return
    try:
        payload = decode_refresh_token(refresh_token, verify_exp=False)
    except AuthenticationError:
        logger.debug("Ignoring undecodable refresh token on logout")
        return
    if _is_blacklisted(db, refresh_token):
        return

    db.add(
        RefreshTokenBlacklist(
            token=refresh_token,
            user_id=payload["userId"],
            expires_at=_exp_as_naive_utc(payload),
        )
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        return
    logger.info(f"User {payload['userId']} logged out")


# ---------------------------------------------------------------------------
# Single-use tokens
# ---------------------------------------------------------------------------

def _issue_token(db: Session, model: Type[SingleUseToken], user: User, lifetime: timedelta) -> str:
    db.query(model).filter(model.user_id == user.id).delete(synchronize_session=False)
    token = generate_opaque_token()
    db.add(model(token=token, user_id=user.id, expires_at=utcnow() + lifetime))
    db.commit()
    return token


def _redeem_token(db: Session, model: Type[SingleUseToken], token: str) -> str:
    """Mark ``token`` used and return its user id, without committing.

    The caller commits the used flag together with its own change.
    """
    now = utcnow()
    row = db.query(model).filter(model.token == token).first()
    if row is None:
        raise ValidationError("Invalid or expired token", code="INVALID_TOKEN")

    claimed = (
        db.query(model)
        .filter(model.id == row.id, model.used.is_(False), model.expires_at > now)
        .update({model.used: True, model.used_at: now}, synchronize_session=False)
    )
    if claimed != 1:
        db.rollback()
        raise ValidationError("Invalid or expired token", code="INVALID_TOKEN")
    return row.user_id


def request_password_reset(db: Session, email: str, email_service: EmailService) -> None:
    """Issue and mail a reset token if the account exists; silent otherwise."""
    user = _find_user_by_email(db, email)
    if user is None or not user.is_active:
        logger.info("Password reset requested for unknown account")
        return
    token = _issue_token(db, PasswordResetToken, user, timedelta(minutes=settings.password_reset_expire_minutes))
    email_service.send_password_reset(user.email, token)
    logger.info(f"Password reset token issued for user {user.id}")


def reset_password(db: Session, token: str, new_password: str) -> None:
    user_id = _redeem_token(db, PasswordResetToken, token)
    user = db.get(User, user_id)
    if user is None:
        db.rollback()
        raise ValidationError("Invalid or expired token", code="INVALID_TOKEN")
    user.password_hash = get_password_hash(new_password)
    db.commit()
    logger.info(f"Password reset for user {user_id}")


def send_verification(db: Session, email: str, email_service: EmailService) -> None:
    user = _find_user_by_email(db, email)
    if user is None or not user.is_active or user.is_email_verified:
        return
    token = _issue_token(
        db, EmailVerificationToken, user, timedelta(hours=settings.email_verification_expire_hours)
    )
    email_service.send_email_verification(user.email, token)
    logger.info(f"Verification token issued for user {user.id}")


def verify_email(db: Session, token: str) -> None:
    user_id = _redeem_token(db, EmailVerificationToken, token)
    user = db.get(User, user_id)
    if user is None:
        db.rollback()
        raise ValidationError("Invalid or expired token", code="INVALID_TOKEN")
    user.is_email_verified = True
    user.email_verified_at = utcnow()
    db.commit()
    logger.info(f"Email verified for user {user_id}")


def cleanup_expired_tokens(db: Session) -> dict:
    """Delete expired or long-used single-use tokens and stale blacklist rows."""
    now = utcnow()
    used_cutoff = now - USED_TOKEN_RETENTION
    results = {}
    for model in (PasswordResetToken, EmailVerificationToken):
        results[model.__tablename__] = (
            db.query(model)
            .filter(
                or_(
                    model.expires_at <= now,
                    model.used.is_(True) & (model.used_at <= used_cutoff),
                )
            )
            .delete(synchronize_session=False)
        )
    results[RefreshTokenBlacklist.__tablename__] = (
        db.query(RefreshTokenBlacklist)
        .filter(RefreshTokenBlacklist.expires_at <= now)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"Token cleanup removed {results}")
    return results
