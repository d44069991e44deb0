"""Application error taxonomy.

Every failure surfaced to API clients is an ``AppError`` (or is converted
into one by ``siampos.core.error_handlers``). Each error carries a
machine-readable ``type``/``code``, an HTTP status, and a severity used to
pick the log level.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class ErrorType(str, Enum):
    """Error categories returned in the ``type`` field of error responses."""

    VALIDATION = "VALIDATION"
    AUTHENTICATION = "AUTHENTICATION"
    AUTHORIZATION = "AUTHORIZATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    DATABASE = "DATABASE"
    EXTERNAL = "EXTERNAL"
    RATE_LIMIT = "RATE_LIMIT"
    INTERNAL = "INTERNAL"


class ErrorSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AppError(Exception):
    """Base class for all errors rendered into the JSON error envelope."""

    type: ErrorType = ErrorType.INTERNAL
    status_code: int = 500
    severity: ErrorSeverity = ErrorSeverity.CRITICAL
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        self.message = message or self.default_message
        self.code = code
        self.details = details
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r})"


class ValidationError(AppError):
    type = ErrorType.VALIDATION
    status_code = 400
    severity = ErrorSeverity.LOW
    default_message = "Validation failed"


class AuthenticationError(AppError):
    type = ErrorType.AUTHENTICATION
    status_code = 401
    severity = ErrorSeverity.HIGH
    default_message = "Authentication required"


class AuthorizationError(AppError):
    type = ErrorType.AUTHORIZATION
    status_code = 403
    severity = ErrorSeverity.HIGH
    default_message = "Access denied"


class NotFoundError(AppError):
    type = ErrorType.NOT_FOUND
    status_code = 404
    severity = ErrorSeverity.MEDIUM
    default_message = "Resource not found"


class ConflictError(AppError):
    type = ErrorType.CONFLICT
    status_code = 409
    severity = ErrorSeverity.MEDIUM
    default_message = "Resource already exists"


class DatabaseError(AppError):
    type = ErrorType.DATABASE
    status_code = 500
    severity = ErrorSeverity.HIGH
    default_message = "Database operation failed"


class ExternalServiceError(AppError):
    type = ErrorType.EXTERNAL
    status_code = 502
    severity = ErrorSeverity.MEDIUM
    default_message = "External service failed"


class RateLimitError(AppError):
    type = ErrorType.RATE_LIMIT
    status_code = 429
    severity = ErrorSeverity.LOW
    default_message = "Too many requests. Please try again later."


class InternalError(AppError):
    pass
