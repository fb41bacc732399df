"""Engine and session factory for the issue store."""
import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from autofix.core import config

logger = logging.getLogger(__name__)


# Base class for models
class Base(DeclarativeBase):
    pass


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for `database_url`.

    SQLite connections are shared across threads (the worker and API are
    synchronous but TestClient runs handlers off-thread) and wait on the
    database lock instead of failing immediately. In-memory SQLite uses a
    single static connection so every session sees the same tables.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": 30}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create the issues table and its indexes if missing."""
    # Register models on Base.metadata
    from autofix.database import models  # noqa: F401

    Base.metadata.create_all(engine)


@lru_cache(maxsize=1)
def get_engine(database_url: Optional[str] = None) -> Engine:
    url = database_url or config.DATABASE_URL
    if not url:
        config.require_settings("DATABASE_URL")
    logger.info("Connecting to issue store: %s", _redact(url))
    return build_engine(url)


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return build_session_factory(get_engine())


def _redact(url: str) -> str:
    """Hide the password part of a database URL for logging."""
    if "@" not in url or "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    creds, host = rest.rsplit("@", 1)
    user = creds.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"
