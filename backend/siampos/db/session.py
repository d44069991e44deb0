"""Engine, session factory and the per-request session dependency."""

from collections.abc import Generator
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from siampos.core.config import settings


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def engine_options(url: str) -> dict[str, Any]:
    """Keyword arguments for ``create_engine`` suited to the backend in ``url``."""
    if _is_sqlite(url):
        # Sessions are used from the threadpool, not the creating thread.
        # Writers wait on the database lock instead of failing fast.
        return {"connect_args": {"check_same_thread": False, "timeout": 30}, "pool_pre_ping": True}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite leaves FK constraints off per connection unless asked."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = create_engine(settings.database_url, **engine_options(settings.database_url))
if _is_sqlite(settings.database_url):
    event.listen(engine, "connect", enable_sqlite_foreign_keys)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


def get_db() -> Generator[Session, None, None]:
    """Yield a session for one request and close it afterwards."""
    with SessionLocal() as db:
        yield db


DbSession = Annotated[Session, Depends(get_db)]
