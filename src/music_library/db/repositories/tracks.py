"""
music_library.db.repositories.tracks

Bulk writes against the tracks table.

Responsibilities:
- Insert many tracks with one multi-row INSERT.
- Bulk duration updates and deletes.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncConnection

from music_library.db.errors import ValidationError
from music_library.db.executor import QueryExecutor
from music_library.db.models import Track
from music_library.db.records import NewTrack
from music_library.db.session import ConnectionProvider
from music_library.db.transactions import LocalTransaction
from music_library.observability.logging import get_logger

log = get_logger(__name__)


class TrackBatchWriter:
    def __init__(self, provider: ConnectionProvider) -> None:
        self._provider = provider

    async def insert_many(
        self, tracks: Sequence[NewTrack], *, conn: AsyncConnection | None = None
    ) -> None:
        """
        Insert `tracks` in a single statement. A driver failure aborts the whole
        batch. Pass `conn` (e.g. one enlisted in a transaction scope) to make the
        batch part of a larger atomic write; otherwise it commits on its own.
        """

        if not tracks:
            return
        if any(t.album_id is None for t in tracks):
            raise ValidationError("every track in a batch needs an album_id")

        stmt = insert(Track).values(
            [
                {"title": t.title, "duration_seconds": t.duration_seconds, "album_id": t.album_id}
                for t in tracks
            ]
        )
        if conn is not None:
            await QueryExecutor(conn).execute(stmt)
        else:
            async with self._provider.connect() as own, LocalTransaction(own):
                await QueryExecutor(own).execute(stmt)
        log.info("tracks.batch_inserted", count=len(tracks))

    async def update_duration_above(self, min_duration: int, new_duration: int) -> int:
        async with self._provider.connect() as conn, LocalTransaction(conn):
            rows = await QueryExecutor(conn).execute(
                """
                UPDATE tracks
                SET duration_seconds = :new_duration
                WHERE duration_seconds > :min_duration
                """,
                {"new_duration": new_duration, "min_duration": min_duration},
            )
        log.info("tracks.batch_updated", rows=rows)
        return rows

    async def delete_shorter_than(self, max_duration: int) -> int:
        async with self._provider.connect() as conn, LocalTransaction(conn):
            rows = await QueryExecutor(conn).execute(
                "DELETE FROM tracks WHERE duration_seconds < :max_duration",
                {"max_duration": max_duration},
            )
        log.info("tracks.batch_deleted", rows=rows)
        return rows
