"""
music_library.db.ambient

Request-scoped shared connection.

Responsibilities:
- Open exactly one connection for the lifetime of a logical request and hand
  it to every repository call made within that request.
- Refuse use outside its lifetime instead of opening ad-hoc connections.
"""

from __future__ import annotations

from types import TracebackType

from sqlalchemy.ext.asyncio import AsyncConnection

from music_library.db.errors import ConfigurationError
from music_library.db.session import ConnectionProvider
from music_library.observability.logging import get_logger

log = get_logger(__name__)


class AmbientContext:
    """
    Passed explicitly to repositories (no thread-local or global lookup).

    The shared connection serves one statement at a time: callers within one
    request must await each repository call before issuing the next.
    """

    def __init__(self, provider: ConnectionProvider) -> None:
        self._provider = provider
        self._conn: AsyncConnection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> AsyncConnection:
        if self._conn is None:
            raise ConfigurationError("ambient context is not open")
        return self._conn

    async def __aenter__(self) -> AmbientContext:
        if self._conn is not None:
            raise ConfigurationError("ambient context is already open")
        self._conn = await self._provider.open()
        log.debug("ambient.open")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()
            log.debug("ambient.close")
