"""
music_library.db.session

Async SQLAlchemy engine, connection provider and ORM session factory.

Responsibilities:
- Create the async engine from a connection URL.
- Hand out one connection per unit of work with guaranteed release.
- Create the async sessionmaker used by the ORM read strategy.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from music_library.db.errors import DatabaseConnectionError
from music_library.observability.logging import get_logger

log = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    # SQLite ships with FK enforcement off; cascades and FK checks depend on it.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(database_url: str) -> AsyncEngine:
    # pool_pre_ping helps detect stale connections in long-lived processes.
    engine = create_async_engine(database_url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False avoids surprising lazy loads after commits.
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


class ConnectionProvider:
    """
    Opens a new (pooled) connection per call. The caller owns it; `connect()`
    is the scoped form and releases the connection on every exit path.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def open(self) -> AsyncConnection:
        try:
            return await self._engine.connect()
        except (sa_exc.DBAPIError, OSError) as e:
            log.warning("db.connect_failed", error=str(e))
            raise DatabaseConnectionError(f"cannot open connection: {e}") from e

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[AsyncConnection]:
        conn = await self.open()
        try:
            yield conn
        finally:
            await conn.close()


# --- Module Notes -----------------------------------------------------------
# The API keeps two providers: the primary one and one built from
# `reports_database_url` for reporting reads (see `api.app`).
