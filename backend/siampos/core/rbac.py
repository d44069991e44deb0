"""Role-Based Access Control (RBAC) utilities.

Request flow for a protected route: authenticate (``get_current_user``),
authorize (``require_roles``), then scope to a tenant
(``ensure_restaurant_access``) inside the handler once the owning
restaurant of the addressed resource is known.
"""

from enum import Enum
from typing import Annotated, Optional, Union

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from siampos.core.errors import AuthenticationError, AuthorizationError
from siampos.core.security import decode_access_token
from siampos.db.session import get_db


class UserRole(str, Enum):
    """User roles for RBAC."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    STAFF = "STAFF"


ADMIN_ONLY = frozenset({UserRole.ADMIN})
OWNER_ONLY = frozenset({UserRole.OWNER})
OWNER_OR_ADMIN = frozenset({UserRole.OWNER, UserRole.ADMIN})
MANAGERS = frozenset({UserRole.OWNER, UserRole.ADMIN, UserRole.MANAGER})
STAFF_AND_UP = frozenset(UserRole)


class AuthenticatedUser:
    """The caller, re-loaded from the database on every request.

    Only the user id is taken from the token; role and restaurant come from
    the stored row so demotions and deactivations apply immediately.
    """

    authenticated = True

    def __init__(self, id: str, email: str, role: UserRole, restaurant_id: str,
                 name_th: Optional[str] = None, name_en: Optional[str] = None):
        self.id = id
        self.email = email
        self.role = role
        self.restaurant_id = restaurant_id
        self.name_th = name_th
        self.name_en = name_en

    @classmethod
    def from_model(cls, user) -> "AuthenticatedUser":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            restaurant_id=user.restaurant_id,
            name_th=user.name_th,
            name_en=user.name_en,
        )

    def __repr__(self) -> str:
        return f"AuthenticatedUser(id={self.id!r}, role={self.role.value})"


class Anonymous:
    """Caller without a usable token on an optional-auth route."""

    authenticated = False
    id = None
    role = None
    restaurant_id = None

    def __repr__(self) -> str:
        return "Anonymous()"


Identity = Union[AuthenticatedUser, Anonymous]


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        return token or None
    return None


def _load_user(db: Session, token: str) -> AuthenticatedUser:
    from siampos.models.user import User

    payload = decode_access_token(token)
    user = db.get(User, payload["userId"])
    if user is None or not user.is_active:
        raise AuthenticationError("User not found", code="USER_NOT_FOUND")
    return AuthenticatedUser.from_model(user)


def get_current_user(request: Request, db: Annotated[Session, Depends(get_db)]) -> AuthenticatedUser:
    """Authenticate the request from its ``Authorization: Bearer`` header."""
    token = _bearer_token(request)
    if token is None:
        raise AuthenticationError("Access token required", code="TOKEN_REQUIRED")
    user = _load_user(db, token)
    request.state.user = user
    return user


def get_identity(request: Request, db: Annotated[Session, Depends(get_db)]) -> Identity:
    """Like ``get_current_user`` but yields ``Anonymous`` instead of failing."""
    token = _bearer_token(request)
    if token is None:
        return Anonymous()
    try:
        user = _load_user(db, token)
    except AuthenticationError:
        return Anonymous()
    request.state.user = user
    return user


def require_roles(*roles: UserRole):
    """Dependency that admits only callers whose role is in ``roles``."""
    allowed = frozenset(roles)

    def role_checker(
        current_user: Annotated[AuthenticatedUser, Depends(get_current_user)]
    ) -> AuthenticatedUser:
        if current_user.role not in allowed:
            raise AuthorizationError(
                "Insufficient permissions",
                code="INSUFFICIENT_PERMISSIONS",
                details={"required": sorted(r.value for r in allowed), "current": current_user.role.value},
            )
        return current_user

    return role_checker


def ensure_restaurant_access(user: AuthenticatedUser, restaurant_id: str) -> None:
    """Raise 403 unless ``user`` belongs to ``restaurant_id``."""
    if user.restaurant_id != restaurant_id:
        raise AuthorizationError(
            "Access denied to this restaurant",
            code="RESTAURANT_ACCESS_DENIED",
        )


# Common role dependencies
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
OptionalIdentity = Annotated[Identity, Depends(get_identity)]
RequireOwnerOrAdmin = Annotated[AuthenticatedUser, Depends(require_roles(*OWNER_OR_ADMIN))]
RequireManager = Annotated[AuthenticatedUser, Depends(require_roles(*MANAGERS))]
RequireStaff = Annotated[AuthenticatedUser, Depends(require_roles(*STAFF_AND_UP))]
