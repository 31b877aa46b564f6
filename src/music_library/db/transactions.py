"""
music_library.db.transactions

Atomic write boundaries.

Responsibilities:
- `LocalTransaction`: one connection, one transaction, commit or roll back.
- `AmbientTransactionScope`: an explicitly passed scope that enlists every
  connection opened through it and commits or rolls them back together.
"""

from __future__ import annotations

import enum
from types import TracebackType

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncTransaction

from music_library.db.session import ConnectionProvider
from music_library.observability.logging import get_logger

log = get_logger(__name__)


class TransactionState(enum.StrEnum):
    started = "STARTED"
    writing = "WRITING"
    committed = "COMMITTED"
    rolled_back = "ROLLED_BACK"


class LocalTransaction:
    """
    Connection-scoped transaction. Every write inside the block must go through
    the same connection; nothing else may interleave on it until exit.

        async with provider.connect() as conn, LocalTransaction(conn):
            ...
    """

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn
        self._tx: AsyncTransaction | None = None
        self.state = TransactionState.started

    async def __aenter__(self) -> AsyncConnection:
        self._tx = await self._conn.begin()
        self.state = TransactionState.writing
        log.debug("tx.local.begin")
        return self._conn

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._tx is None:
            raise RuntimeError("transaction was not started")
        if exc_type is None:
            try:
                await self._tx.commit()
            except BaseException:
                if self._tx.is_active:
                    await self._tx.rollback()
                self.state = TransactionState.rolled_back
                log.warning("tx.local.commit_failed")
                raise
            self.state = TransactionState.committed
            log.debug("tx.local.commit")
            return

        if self._tx.is_active:
            await self._tx.rollback()
        self.state = TransactionState.rolled_back
        log.info("tx.local.rollback", error=repr(exc))
        # Returning None propagates the original exception.


class AmbientTransactionScope:
    """
    Atomic boundary over any number of connections.

    Connections come from `enlist()` and already have a transaction open, so
    writers use them without seeing a transaction handle. Only the originating
    caller calls `complete()`; leaving the block without it (or with an
    exception) rolls back every enlisted connection.

    There is no two-phase commit. If a commit fails part-way, connections
    committed before it stay committed and the rest are rolled back.

        async with AmbientTransactionScope(provider) as scope:
            conn = await scope.enlist()
            ...
            scope.complete()
    """

    def __init__(self, provider: ConnectionProvider) -> None:
        self._provider = provider
        self._enlisted: list[tuple[AsyncConnection, AsyncTransaction]] = []
        self._completed = False
        self._closed = False
        self.state = TransactionState.started

    @property
    def enlisted_count(self) -> int:
        return len(self._enlisted)

    @property
    def completed(self) -> bool:
        return self._completed

    async def enlist(self) -> AsyncConnection:
        if self._closed:
            raise RuntimeError("transaction scope is already disposed")
        conn = await self._provider.open()
        try:
            tx = await conn.begin()
        except BaseException:
            await conn.close()
            raise
        self._enlisted.append((conn, tx))
        self.state = TransactionState.writing
        log.debug("tx.scope.enlist", connections=len(self._enlisted))
        return conn

    def complete(self) -> None:
        self._completed = True

    async def __aenter__(self) -> AmbientTransactionScope:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self._closed = True
        try:
            if self._completed and exc_type is None:
                await self._commit_all()
            else:
                await self._rollback_all()
                log.info(
                    "tx.scope.rollback",
                    connections=len(self._enlisted),
                    completed=self._completed,
                    error=repr(exc) if exc is not None else None,
                )
        finally:
            for conn, _ in self._enlisted:
                await conn.close()

    async def _commit_all(self) -> None:
        # No two-phase commit: a failure part-way rolls back whatever is still open.
        for index, (_, tx) in enumerate(self._enlisted):
            try:
                await tx.commit()
            except BaseException:
                for _, pending in self._enlisted[index:]:
                    if pending.is_active:
                        await pending.rollback()
                self.state = TransactionState.rolled_back
                log.warning("tx.scope.commit_failed", committed=index, total=len(self._enlisted))
                raise
        self.state = TransactionState.committed
        log.debug("tx.scope.commit", connections=len(self._enlisted))

    async def _rollback_all(self) -> None:
        for _, tx in self._enlisted:
            if tx.is_active:
                await tx.rollback()
        self.state = TransactionState.rolled_back


# --- Module Notes -----------------------------------------------------------
# The scope is a value threaded through calls, never process-global state; two
# concurrent requests each get their own scope.
