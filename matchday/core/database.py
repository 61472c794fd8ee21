"""
Database Configuration and Session Management

Provides async SQLAlchemy engine and session factory for PostgreSQL.
"""

import ssl
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from fastapi import Depends
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from matchday.config import Settings, get_settings
from matchday.models.orm.base import Base  # noqa: F401 - imported for Alembic


def _prepare_asyncpg_url(url: str) -> tuple[str, dict]:
    """
    Move a libpq-style ``sslmode`` query parameter into asyncpg connect_args.

    Args:
        url: PostgreSQL database URL (may contain sslmode parameter)

    Returns:
        Tuple of (url without sslmode, connect_args dict)
    """
    parsed = urlparse(url)
    query_params = parse_qs(parsed.query)
    connect_args: dict = {}

    sslmode = query_params.pop("sslmode", [None])[0]
    if sslmode in ("require", "verify-ca", "verify-full"):
        ssl_context = ssl.create_default_context()
        if sslmode != "verify-full":
            ssl_context.check_hostname = False
        if sslmode == "require":
            ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_context
    elif sslmode == "prefer":
        connect_args["ssl"] = "prefer"

    cleaned_url = urlunparse(parsed._replace(query=urlencode(query_params, doseq=True)))
    return cleaned_url, connect_args


# Global engine and session factory (initialized on startup)
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """
    Get or create the async SQLAlchemy engine.

    Args:
        settings: Optional settings override (for testing)
    """
    global _engine

    if _engine is None:
        settings = settings or get_settings()
        db_url, connect_args = _prepare_asyncpg_url(settings.database_url)
        _engine = create_async_engine(
            db_url,
            echo=settings.debug,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            connect_args=connect_args,
        )

    return _engine


def get_session_factory(settings: Settings | None = None) -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory."""
    global _async_session_factory

    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            get_engine(settings),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database sessions in FastAPI routes.

    Commits when the request handler returns, rolls back when it raises.
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Type alias for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for getting database sessions outside of FastAPI routes.

    Used by the background worker.
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Verify database connectivity on application startup."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(lambda _: None)


async def close_db() -> None:
    """Dispose of database connections on application shutdown."""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None


def reset_db_state() -> None:
    """Forget the engine and session factory so tests get fresh settings."""
    global _engine, _async_session_factory
    _engine = None
    _async_session_factory = None
