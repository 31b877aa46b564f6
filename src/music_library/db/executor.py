"""
music_library.db.executor

Parameterized SQL execution over one open connection.

Responsibilities:
- Buffered and streaming reads, multi-statement reads, first/single lookups.
- Writes returning row counts or a scalar (`RETURNING`), stored procedure calls.
- Translate driver errors into `QueryError` carrying the statement intent.
"""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.engine import CursorResult, RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection
from sqlalchemy.sql import Executable

from music_library.db.errors import (
    NotFoundError,
    QueryError,
    StatementIntent,
    ValidationError,
    translate_db_error,
)
from music_library.observability.logging import get_logger

log = get_logger(__name__)

Params = Mapping[str, Any] | Sequence[Mapping[str, Any]] | None

_PROCEDURE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


def build_call_statement(name: str, param_names: Sequence[str]) -> str:
    if not _PROCEDURE_NAME.match(name):
        raise ValidationError(f"invalid procedure name: {name!r}")
    placeholders = ", ".join(f":{p}" for p in param_names)
    return f"CALL {name}({placeholders})"


class QueryExecutor:
    """
    Runs statements on a connection it does not own. Statements on one executor
    must not overlap: a connection serves one statement at a time.
    """

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    @property
    def connection(self) -> AsyncConnection:
        return self._conn

    async def _execute(
        self, sql: str | Executable, params: Params, intent: StatementIntent
    ) -> CursorResult:
        # Plain strings are parameterized SQL; Core constructs (multi-row inserts) pass through.
        statement = text(sql) if isinstance(sql, str) else sql
        try:
            if params is None:
                return await self._conn.execute(statement)
            return await self._conn.execute(statement, params)
        except sa_exc.DBAPIError as e:
            raise self._failed(e, sql if isinstance(sql, str) else str(sql), intent) from e

    @staticmethod
    def _failed(error: sa_exc.DBAPIError, statement: str, intent: StatementIntent) -> QueryError:
        log.warning(
            "db.statement_failed",
            intent=str(intent),
            statement=statement,
            error=str(error.orig),
        )
        return translate_db_error(error, intent=intent, statement=statement)

    async def query_many(self, sql: str, params: Params = None) -> list[RowMapping]:
        # Buffered: every row is read before returning.
        result = await self._execute(sql, params, StatementIntent.read)
        return list(result.mappings().all())

    async def query_stream(self, sql: str, params: Params = None) -> AsyncIterator[RowMapping]:
        """
        Unbuffered read over a server-side cursor. Single pass; the cursor and the
        connection stay busy until the iterator is drained or closed, so wrap
        consumption in `contextlib.aclosing(...)`.
        """

        try:
            result = await self._conn.stream(text(sql), params if params is not None else {})
        except sa_exc.DBAPIError as e:
            raise self._failed(e, sql, StatementIntent.read) from e

        try:
            async for row in result.mappings():
                yield row
        except sa_exc.DBAPIError as e:
            raise self._failed(e, sql, StatementIntent.read) from e
        finally:
            await result.close()

    async def query_multiple(
        self, statements: Sequence[str], params: Mapping[str, Any] | None = None
    ) -> tuple[list[RowMapping], ...]:
        # Result sets come back in statement order; params are shared by all statements.
        results: list[list[RowMapping]] = []
        for sql in statements:
            results.append(await self.query_many(sql, params))
        return tuple(results)

    async def query_first(self, sql: str, params: Params = None) -> RowMapping:
        row = await self.query_first_or_none(sql, params)
        if row is None:
            raise NotFoundError("query returned no rows")
        return row

    async def query_first_or_none(self, sql: str, params: Params = None) -> RowMapping | None:
        result = await self._execute(sql, params, StatementIntent.read)
        return result.mappings().first()

    async def query_single(self, sql: str, params: Params = None) -> RowMapping:
        row = await self.query_single_or_none(sql, params)
        if row is None:
            raise NotFoundError("query returned no rows")
        return row

    async def query_single_or_none(self, sql: str, params: Params = None) -> RowMapping | None:
        rows = await self.query_many(sql, params)
        if len(rows) > 1:
            raise QueryError(
                f"expected at most one row, got {len(rows)}",
                intent=StatementIntent.read,
                statement=sql,
            )
        return rows[0] if rows else None

    async def query_scalar(self, sql: str, params: Params = None) -> Any:
        result = await self._execute(sql, params, StatementIntent.read)
        return result.scalar()

    async def execute(self, sql: str | Executable, params: Params = None) -> int:
        result = await self._execute(sql, params, StatementIntent.write)
        return result.rowcount

    async def execute_scalar(self, sql: str | Executable, params: Params = None) -> Any:
        result = await self._execute(sql, params, StatementIntent.write)
        try:
            return result.scalar_one()
        except sa_exc.NoResultFound as e:
            raise QueryError(
                "statement returned no value", intent=StatementIntent.write, statement=str(sql)
            ) from e

    async def call_procedure(self, name: str, params: Mapping[str, Any]) -> None:
        sql = build_call_statement(name, list(params))
        await self._execute(sql, params, StatementIntent.procedure)


# --- Module Notes -----------------------------------------------------------
# No retries here; a failed statement surfaces immediately. Retry policy, if any,
# belongs to the caller.
