"""Authentication routes."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Request, status

from siampos.core.email import EmailService, get_email_service
from siampos.core.rate_limit import AUTH_LIMIT, READ_LIMIT, WRITE_LIMIT, limiter
from siampos.core.rbac import CurrentUser
from siampos.core.responses import success_response
from siampos.db.session import DbSession
from siampos.models.user import User
from siampos.schemas.auth import (
    ChangePasswordRequest,
    EmailRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from siampos.schemas.user import ProfileUpdate, UserOut
from siampos.services import auth_service

logger = logging.getLogger("auth")

router = APIRouter()

Mailer = Annotated[EmailService, Depends(get_email_service)]

# Same body whether or not the account exists
RESET_REQUESTED_MESSAGE = "If an account exists, a reset link has been sent"
VERIFICATION_REQUESTED_MESSAGE = "If an account exists, a verification email has been sent"


def _user_out(user: User) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")


def _session_response(user: User, tokens: dict, message: str) -> dict:
    return {
        "success": True,
        "message": message,
        "user": _user_out(user),
        **tokens,
    }


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
def register(request: Request, body: RegisterRequest, db: DbSession, mailer: Mailer):
    """Create a user in an existing restaurant and sign them in."""
    user, tokens = auth_service.register_user(db, body, mailer)
    return _session_response(user, tokens, "User created successfully")


@router.post("/login")
@limiter.limit(AUTH_LIMIT)
def login(request: Request, body: LoginRequest, db: DbSession):
    client_ip = request.client.host if request.client else "unknown"
    user, tokens = auth_service.authenticate_user(db, body.email, body.password)
    logger.info(f"Successful login: {user.email} (ID: {user.id}, role: {user.role.value}) from IP: {client_ip}")
    return _session_response(user, tokens, "Login successful")


@router.post("/refresh")
@limiter.limit(WRITE_LIMIT)
def refresh(request: Request, body: RefreshRequest, db: DbSession):
    """Rotate a refresh token into a new access/refresh pair."""
    tokens = auth_service.refresh_session(db, body.refreshToken)
    return {"success": True, **tokens}


@router.post("/forgot-password")
@limiter.limit(AUTH_LIMIT)
def forgot_password(request: Request, body: EmailRequest, db: DbSession, mailer: Mailer):
    auth_service.request_password_reset(db, body.email, mailer)
    return success_response(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password")
@limiter.limit(AUTH_LIMIT)
def reset_password(request: Request, body: ResetPasswordRequest, db: DbSession):
    auth_service.reset_password(db, body.token, body.newPassword)
    return success_response(message="Password has been reset")


@router.post("/send-verification")
@limiter.limit(AUTH_LIMIT)
def send_verification(request: Request, body: EmailRequest, db: DbSession, mailer: Mailer):
    auth_service.send_verification(db, body.email, mailer)
    return success_response(message=VERIFICATION_REQUESTED_MESSAGE)


@router.post("/verify-email")
@limiter.limit(AUTH_LIMIT)
def verify_email(request: Request, body: VerifyEmailRequest, db: DbSession):
    auth_service.verify_email(db, body.token)
    return success_response(message="Email verified")


@router.post("/logout")
@limiter.limit(WRITE_LIMIT)
def logout(
    request: Request,
    current_user: CurrentUser,
    db: DbSession,
    body: Optional[LogoutRequest] = Body(default=None),
):
    """Blacklist the supplied refresh token. Always succeeds."""
    auth_service.logout(db, body.refreshToken if body else None)
    return success_response(message="Logged out successfully")


@router.get("/profile")
@limiter.limit(READ_LIMIT)
def get_profile(request: Request, current_user: CurrentUser, db: DbSession):
    user = db.get(User, current_user.id)
    return success_response(_user_out(user))


@router.put("/profile")
@limiter.limit(WRITE_LIMIT)
def update_profile(request: Request, body: ProfileUpdate, current_user: CurrentUser, db: DbSession):
    user = auth_service.update_profile(db, current_user.id, body)
    return success_response(_user_out(user), message="Profile updated")


@router.put("/change-password")
@limiter.limit(AUTH_LIMIT)
def change_password(request: Request, body: ChangePasswordRequest, current_user: CurrentUser, db: DbSession):
    auth_service.change_password(db, current_user.id, body.currentPassword, body.newPassword)
    return success_response(message="Password changed successfully")
