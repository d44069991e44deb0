"""Exception handlers that render every failure into the JSON error envelope.

Envelope: ``{success, message, type, code, details, timestamp, requestId}``.
"""

import logging
import traceback
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from siampos.core.config import settings
from siampos.core.errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DatabaseError,
    ErrorSeverity,
    InternalError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from siampos.core.observability import get_request_id, new_request_id

logger = logging.getLogger("errors")

_SEVERITY_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}

_HTTP_STATUS_ERRORS = {
    400: ValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ConflictError,
    429: RateLimitError,
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or new_request_id()


def _caller_id(request: Request) -> Optional[str]:
    user = getattr(request.state, "user", None)
    return getattr(user, "id", None)


def log_error(error: AppError, request: Request, request_id: str) -> None:
    """Log an error at a level matching its severity, with request context."""
    logger.log(
        _SEVERITY_LEVELS.get(error.severity, logging.ERROR),
        f"{error.severity.value} {error.type.value} error: {error.message}",
        extra={
            "error_type": error.type.value,
            "error_code": error.code,
            "status_code": error.status_code,
            "method": request.method,
            "path": request.url.path,
            "user_id": _caller_id(request),
            "request_id": request_id,
        },
    )


def error_response(error: AppError, request: Request) -> JSONResponse:
    request_id = _request_id(request)
    log_error(error, request, request_id)
    body: dict[str, Any] = {
        "success": False,
        "message": error.message,
        "type": error.type.value,
        "code": error.code,
        "details": error.details,
        "timestamp": error.timestamp,
        "requestId": request_id,
    }
    headers = {"X-Request-ID": request_id}
    if error.status_code == 401:
        headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse(status_code=error.status_code, content=body, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return error_response(exc, request)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg"),
            "code": err.get("type"),
        }
        for err in exc.errors()
    ]
    return error_response(
        ValidationError("Validation failed", code="VALIDATION_ERROR", details=details),
        request,
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    return error_response(
        ConflictError("Duplicate entry found", code="DUPLICATE_ENTRY"),
        request,
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    details = {"error": str(exc)} if settings.debug else None
    return error_response(
        DatabaseError("Database operation failed", code="DATABASE_ERROR", details=details),
        request,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error_cls = _HTTP_STATUS_ERRORS.get(exc.status_code)
    if exc.status_code == 404 and exc.detail == "Not Found":
        error = NotFoundError(
            f"Route {request.method} {request.url.path} not found", code="ROUTE_NOT_FOUND"
        )
    elif error_cls is not None:
        error = error_cls(str(exc.detail))
    else:
        # e.g. 405 Method Not Allowed: keep the status, classify by range
        error = ValidationError(str(exc.detail)) if exc.status_code < 500 else InternalError(str(exc.detail))
        error.status_code = exc.status_code
    return error_response(error, request)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return error_response(
        RateLimitError(code="RATE_LIMIT_EXCEEDED", details={"limit": str(exc.detail)}),
        request,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    if settings.debug:
        error = InternalError(
            str(exc) or "Internal server error",
            code="UNKNOWN_ERROR",
            details={"stack": traceback.format_exception(type(exc), exc, exc.__traceback__)},
        )
    else:
        error = InternalError(code="UNKNOWN_ERROR")
    return error_response(error, request)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
