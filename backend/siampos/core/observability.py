"""
Observability Middleware and Utilities

Provides:
- Logging configuration (human-readable in debug, JSON lines otherwise)
- Request ID tracking across requests (X-Request-ID)
- Request/response logging
- Security response headers
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for the current request ID
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

request_logger = logging.getLogger("requests")

# Paths not worth a log line per hit
_QUIET_PATHS = {"/health", "/", "/docs", "/openapi.json"}


def get_request_id() -> Optional[str]:
    """Get current request ID from context."""
    return request_id_var.get()


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:16]}"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        request_id = get_request_id()
        if request_id:
            payload["request_id"] = request_id
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str = "INFO", debug: bool = True) -> None:
    """Configure the root logger once at startup."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if debug:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    else:
        handler.setFormatter(JSONFormatter())
    root_logger.addHandler(handler)

    # SQL echo is far too chatty at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Assign a request ID to every request and log request/response pairs.

    Reuses the caller's X-Request-ID header when present.
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.HEADER_NAME) or new_request_id()
        token = request_id_var.set(request_id)
        request.state.request_id = request_id

        quiet = request.url.path in _QUIET_PATHS
        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        try:
            response = await call_next(request)
        except Exception as e:
            request_logger.error(
                f"Error: {request.method} {request.url.path} - Exception: {e} - "
                f"Time: {time.perf_counter() - start_time:.3f}s - Client: {client_ip} - "
                f"RequestID: {request_id}"
            )
            raise
        finally:
            request_id_var.reset(token)

        if not quiet:
            log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
            request_logger.log(
                log_level,
                f"{request.method} {request.url.path} - Status: {response.status_code} - "
                f"Time: {time.perf_counter() - start_time:.3f}s - Client: {client_ip} - "
                f"RequestID: {request_id}",
            )
        response.headers[self.HEADER_NAME] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response
