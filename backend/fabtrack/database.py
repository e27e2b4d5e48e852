"""
Fabtrack Backend — Database Connection Management
==================================================

What:  The process-scoped store resource, the ORM base class and the
       FastAPI session dependency.
Why:   Centralizes all database connection logic in one place.
How:   `Database` owns an async SQLAlchemy engine and session factory.
       The app factory creates one instance and keeps it on `app.state`;
       the lifespan connects it and `get_db_session` hands out sessions.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Connected once at startup; sessions are created per-request.

Connection Contract:
    connect(uri)   no-op when already connected
                   ConfigurationError when uri is empty
                   DatabaseConnectionError when the store is unreachable
    disconnect()   disposes the engine (safe to call twice)
    ping()         SELECT 1 (health check)

    On the first successful connect the `forms` table is created if it does
    not exist yet; there is no migration tool.
"""

import logging
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from fabtrack.config import settings
from fabtrack.exceptions import ConfigurationError, DatabaseConnectionError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so their tables share one metadata
    object, which `Database.connect` uses to create missing tables.
    """
    pass


def _engine_options(uri: str) -> Dict[str, Any]:
    """
    Engine keyword arguments for the given URL.

    SQLite (used by the test-suite) has no connection pool to size, so the
    pool options are only passed for server databases.
    """
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not uri.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


class Database:
    """
    One connection (pool) to the form store, shared by every request.

    The instance is created by the app factory and stored on `app.state`, so
    handlers reach it through `Depends(get_db_session)` rather than importing
    a module global.
    """

    def __init__(self) -> None:
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseConnectionError("Database is not connected")
        return self._engine

    async def connect(self, uri: Optional[str]) -> None:
        """
        Open the shared connection pool.

        Calling it again after a successful connect does nothing, so the app
        lifespan and the test fixtures can both call it safely.

        Raises:
            ConfigurationError: `uri` is empty or missing.
            DatabaseConnectionError: the database could not be reached.
        """
        if self._engine is not None:
            return
        if not uri:
            raise ConfigurationError("Database connection URI is missing (set DATABASE_URL)")

        # Importing the models registers their tables on Base.metadata
        from fabtrack.models import form  # noqa: F401

        engine = create_async_engine(uri, **_engine_options(uri))
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (OSError, SQLAlchemyError) as e:
            await engine.dispose()
            logger.error("Database connection failed: %s", str(e))
            raise DatabaseConnectionError(
                message=f"Could not connect to the database: {e}",
                context={"error_type": type(e).__name__},
            ) from e

        self._engine = engine
        # expire_on_commit=False: returned rows stay readable after commit
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Database connected (%s)", engine.url.render_as_string(hide_password=True))

    async def disconnect(self) -> None:
        """Close all pooled connections. Safe to call when not connected."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database disconnected")

    async def ping(self) -> None:
        """Run SELECT 1; raises if the store does not answer."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    def session(self) -> AsyncSession:
        """Create a new session bound to the shared engine."""
        if self._session_factory is None:
            raise DatabaseConnectionError("Database is not connected")
        return self._session_factory()


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Takes the Database resource from `request.app.state`
        2. Yields a fresh session to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/forms")
        async def list_forms(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
