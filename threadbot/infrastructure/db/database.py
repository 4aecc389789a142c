"""
Database Configuration for ThreadBot

Async SQLAlchemy engine and unit-of-work sessions. One session is one unit
of work: it commits when the block exits cleanly and rolls back otherwise.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from threadbot.config.settings import Settings, get_settings
from threadbot.infrastructure.exceptions import ConfigurationError


logger = logging.getLogger(__name__)

_ASYNC_DRIVER_PREFIXES = ("postgresql://", "postgres://")


def normalize_database_url(database_url: str) -> str:
    """Point plain PostgreSQL URLs at the asyncpg driver."""
    for prefix in _ASYNC_DRIVER_PREFIXES:
        if database_url.startswith(prefix):
            return "postgresql+asyncpg://" + database_url[len(prefix):]
    return database_url


class Database:
    """
    Lazily created engine plus the session factory bound to it.

    The engine is only built on first use, so importing the app without
    DATABASE_URL works until something actually touches storage.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._connect()
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            self._connect()
        return self._sessions

    def _engine_options(self, url: str) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": self._settings.database_echo}
        # sqlite and friends reject pool sizing arguments
        if url.startswith("postgresql"):
            options.update(
                pool_size=self._settings.database_pool_size,
                max_overflow=self._settings.database_max_overflow,
                pool_timeout=self._settings.database_pool_timeout,
                pool_pre_ping=True,
            )
        return options

    def _connect(self) -> None:
        if not self._settings.database_url:
            raise ConfigurationError(
                "DATABASE_URL is required",
                missing_keys=["DATABASE_URL"],
            )
        url = normalize_database_url(self._settings.database_url)
        self._engine = create_async_engine(url, **self._engine_options(url))
        self._sessions = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created")

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a session that commits on success and rolls back on error."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        # registers every table on the metadata
        import threadbot.infrastructure.db.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    async def ping(self) -> None:
        async with self.session_factory() as session:
            await session.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessions = None


_database: Optional[Database] = None


def get_database() -> Database:
    """Process-wide database handle."""
    global _database
    if _database is None:
        _database = Database()
    return _database


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session."""
    async with get_database().session_scope() as session:
        yield session


def get_session_context():
    """Session scope for work outside a request, e.g. one incoming message."""
    return get_database().session_scope()


async def init_db() -> None:
    """Create missing tables and check connectivity."""
    database = get_database()
    await database.create_tables()
    await database.ping()


async def close_db() -> None:
    await get_database().dispose()
