"""
music_library.db.repositories.reports

Reporting reads over the (optionally separate) reporting connection.

Responsibilities:
- Aggregate counts and per-album summaries, kept off the primary provider.
"""

from __future__ import annotations

from music_library.db.executor import QueryExecutor
from music_library.db.mapping import map_rows
from music_library.db.records import ALBUM_REPORT, AlbumReportRow
from music_library.db.session import ConnectionProvider


class ReportRepo:
    def __init__(self, report_provider: ConnectionProvider) -> None:
        self._provider = report_provider

    async def total_track_count(self) -> int:
        async with self._provider.connect() as conn:
            count = await QueryExecutor(conn).query_scalar("SELECT COUNT(*) FROM tracks")
        return int(count or 0)

    async def top_albums(self, limit: int = 10) -> list[AlbumReportRow]:
        # Albums without tracks still show up, with a zero count.
        async with self._provider.connect() as conn:
            rows = await QueryExecutor(conn).query_many(
                """
                SELECT a.id, a.title, a.artist,
                       COUNT(t.id) AS track_count,
                       AVG(t.duration_seconds) AS avg_duration
                FROM albums a
                LEFT JOIN tracks t ON t.album_id = a.id
                GROUP BY a.id, a.title, a.artist
                ORDER BY track_count DESC, a.id
                LIMIT :limit
                """,
                {"limit": limit},
            )
        return map_rows(rows, ALBUM_REPORT)
