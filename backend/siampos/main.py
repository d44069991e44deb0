"""FastAPI application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from siampos.api.routes import api_router
from siampos.core.config import settings
from siampos.core.error_handlers import register_error_handlers
from siampos.core.observability import (
    RequestContextMiddleware,
    SecurityHeadersMiddleware,
    configure_logging,
)
from siampos.core.rate_limit import limiter
from siampos.db.base import Base
from siampos.db.session import SessionLocal, engine
from siampos import models  # noqa: F401  registers all tables on Base.metadata
from siampos.services.auth_service import cleanup_expired_tokens

configure_logging(settings.log_level, settings.debug)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def run_token_cleanup() -> dict:
    with SessionLocal() as db:
        return cleanup_expired_tokens(db)


async def _periodic_token_cleanup(interval: int) -> None:
    """Prune expired auth tokens every ``interval`` seconds."""
    while True:
        try:
            await asyncio.sleep(interval)
            await asyncio.to_thread(run_token_cleanup)
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.warning(f"Periodic token cleanup error: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting Siam POS")

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")

    cleanup_task = asyncio.create_task(_periodic_token_cleanup(settings.token_cleanup_interval_seconds))
    logger.info(f"Token cleanup started (runs every {settings.token_cleanup_interval_seconds}s)")

    yield

    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass

    logger.info("Shutting down Siam POS")


app = FastAPI(
    title="Siam POS",
    description="Restaurant point-of-sale and management API",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Rate limiting setup
app.state.limiter = limiter
register_error_handlers(app)

app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestContextMiddleware)

# CORS middleware - MUST be added last so it runs first (Starlette LIFO order)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.cors_origins != "*",
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
        "X-Requested-With",
        "X-Request-ID",
    ],
    expose_headers=["X-Request-ID"],
    max_age=600,
)

app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
def health_check():
    """Basic liveness check endpoint."""
    return {
        "status": "healthy",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health/ready")
def readiness_check():
    """Readiness probe with a database round trip."""
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError as e:
        logger.warning(f"Readiness probe cannot reach the database: {e}")
        database = "unhealthy"
    return {
        "status": "ready" if database == "healthy" else "degraded",
        "version": VERSION,
        "checks": {"database": database},
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("siampos.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
