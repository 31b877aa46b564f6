"""
tests.test_executor

Query executor against a real SQLite database: read modes, cardinality,
writes and error translation.
"""

from __future__ import annotations

from contextlib import aclosing

import pytest

from conftest import CLASSIC_ALBUMS, count_rows, seed_albums, seed_tracks
from music_library.db.errors import (
    ForeignKeyViolationError,
    NotFoundError,
    QueryError,
    StatementIntent,
    UniqueViolationError,
    ValidationError,
)
from music_library.db import executor as executor_module
from music_library.db.executor import QueryExecutor, build_call_statement

SELECT_TITLES = "SELECT id, title FROM albums ORDER BY id"


@pytest.mark.asyncio
async def test_buffered_and_streamed_reads_match(engine, provider) -> None:
    await seed_albums(engine, *CLASSIC_ALBUMS)

    async with provider.connect() as conn:
        executor = QueryExecutor(conn)
        buffered = [dict(r) for r in await executor.query_many(SELECT_TITLES)]
        async with aclosing(executor.query_stream(SELECT_TITLES)) as rows:
            streamed = [dict(r) async for r in rows]

    assert streamed == buffered
    assert [r["title"] for r in buffered] == ["Thriller", "Back in Black", "Dark Side of the Moon"]


@pytest.mark.asyncio
async def test_abandoned_stream_releases_cursor(engine, provider) -> None:
    await seed_albums(engine, *CLASSIC_ALBUMS)

    async with provider.connect() as conn:
        executor = QueryExecutor(conn)
        async with aclosing(executor.query_stream(SELECT_TITLES)) as rows:
            async for row in rows:
                assert row["title"] == "Thriller"
                break
        # The connection is usable again once the stream is closed.
        assert len(await executor.query_many(SELECT_TITLES)) == 3


@pytest.mark.asyncio
async def test_query_multiple_returns_results_in_statement_order(engine, provider) -> None:
    [album_id] = await seed_albums(engine, CLASSIC_ALBUMS[0])
    await seed_tracks(engine, album_id, ("Beat It", 258), ("Billie Jean", 294))

    async with provider.connect() as conn:
        albums, tracks = await QueryExecutor(conn).query_multiple(
            ["SELECT id, title FROM albums", "SELECT id, title FROM tracks ORDER BY id"]
        )

    assert [a["title"] for a in albums] == ["Thriller"]
    assert [t["title"] for t in tracks] == ["Beat It", "Billie Jean"]


@pytest.mark.asyncio
async def test_first_and_single_cardinality(engine, provider) -> None:
    await seed_albums(engine, *CLASSIC_ALBUMS)

    async with provider.connect() as conn:
        executor = QueryExecutor(conn)
        first = await executor.query_first(SELECT_TITLES)
        assert first["title"] == "Thriller"

        with pytest.raises(NotFoundError):
            await executor.query_first("SELECT id FROM albums WHERE id = :id", {"id": 999})
        assert await executor.query_single_or_none("SELECT id FROM albums WHERE id = 999") is None

        with pytest.raises(QueryError) as excinfo:
            await executor.query_single(SELECT_TITLES)
        assert excinfo.value.intent is StatementIntent.read


@pytest.mark.asyncio
async def test_execute_and_execute_scalar(engine, provider) -> None:
    async with provider.connect() as conn:
        executor = QueryExecutor(conn)
        new_id = await executor.execute_scalar(
            "INSERT INTO albums (title, artist, year, rating) "
            "VALUES ('Nevermind', 'Nirvana', 1991, 4.7) RETURNING id"
        )
        affected = await executor.execute(
            "UPDATE albums SET year = :year WHERE id = :id", {"year": 1992, "id": new_id}
        )
        await conn.commit()

    assert new_id == 1
    assert affected == 1
    assert await count_rows(engine, "albums") == 1


@pytest.mark.asyncio
async def test_foreign_key_violation_is_classified(engine, provider) -> None:
    async with provider.connect() as conn:
        with pytest.raises(ForeignKeyViolationError) as excinfo:
            await QueryExecutor(conn).execute(
                "INSERT INTO tracks (title, duration_seconds, album_id) VALUES ('x', 10, 42)"
            )
    assert excinfo.value.intent is StatementIntent.write
    assert excinfo.value.kind == "foreign_key_violation"


@pytest.mark.asyncio
async def test_unique_violation_is_classified(engine, provider) -> None:
    [album_id] = await seed_albums(engine, CLASSIC_ALBUMS[0])
    async with provider.connect() as conn:
        with pytest.raises(UniqueViolationError):
            await QueryExecutor(conn).execute(
                "INSERT INTO albums (id, title, artist, year, rating) "
                "VALUES (:id, 'Dup', 'Dup', 2000, 1.0)",
                {"id": album_id},
            )


@pytest.mark.asyncio
async def test_procedure_failure_carries_procedure_intent(provider) -> None:
    # SQLite has no stored procedures; the driver error still surfaces as a QueryError.
    async with provider.connect() as conn:
        with pytest.raises(QueryError) as excinfo:
            await QueryExecutor(conn).call_procedure("add_track_and_update_album", {"title": "x"})
    assert excinfo.value.intent is StatementIntent.procedure


def test_build_call_statement() -> None:
    assert (
        build_call_statement("add_track_and_update_album", ["title", "duration_seconds", "album_id"])
        == "CALL add_track_and_update_album(:title, :duration_seconds, :album_id)"
    )
    with pytest.raises(ValidationError):
        build_call_statement("drop table albums; --", [])


class _RecordingLog:
    def __init__(self) -> None:
        self.warnings: list[tuple[str, dict]] = []

    def warning(self, event: str, **fields) -> None:
        self.warnings.append((event, fields))


@pytest.mark.asyncio
async def test_failed_stream_is_logged_like_other_statements(provider, monkeypatch) -> None:
    recorder = _RecordingLog()
    monkeypatch.setattr(executor_module, "log", recorder)

    async with provider.connect() as conn:
        with pytest.raises(QueryError) as excinfo:
            stream = QueryExecutor(conn).query_stream("SELECT * FROM no_such_table")
            async with aclosing(stream) as rows:
                async for _ in rows:
                    pass

    assert excinfo.value.intent is StatementIntent.read
    [(event, fields)] = recorder.warnings
    assert event == "db.statement_failed"
    assert fields["intent"] == "read"
    assert fields["statement"] == "SELECT * FROM no_such_table"
