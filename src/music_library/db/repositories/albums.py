"""
music_library.db.repositories.albums

Direct-SQL repository for albums and their tracks.

Responsibilities:
- Reads: lookups by id/artist/year/title, album+tracks aggregates, two-result
  batch reads, buffered and streaming listings, cached and ambient listings.
- Writes: insert/update/delete, the stored procedure call, and album+tracks
  inserts under either transaction strategy.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import aclosing
from typing import Any

from sqlalchemy import Numeric, bindparam, text
from sqlalchemy.ext.asyncio import AsyncConnection

from music_library.db.ambient import AmbientContext
from music_library.db.cache import TtlCache
from music_library.db.errors import ConfigurationError, ValidationError
from music_library.db.executor import QueryExecutor
from music_library.db.mapping import aggregate, map_row, map_rows
from music_library.db.models import TITLE_MAX_LENGTH
from music_library.db.records import (
    ALBUM,
    ALBUM_IN_JOIN,
    TRACK,
    TRACK_IN_JOIN,
    AlbumRecord,
    AlbumWithTracks,
    NewAlbum,
    NewTrack,
    TrackRecord,
)
from music_library.db.session import ConnectionProvider
from music_library.db.transactions import AmbientTransactionScope, LocalTransaction
from music_library.observability.logging import get_logger

log = get_logger(__name__)

ALL_ALBUMS_CACHE_KEY = "albums:all"
ADD_TRACK_PROCEDURE = "add_track_and_update_album"

_SELECT_ALBUMS = "SELECT id, title, artist, year, rating FROM albums"
_SELECT_TRACKS = "SELECT id, title, duration_seconds, album_id FROM tracks"

_SELECT_ALBUMS_WITH_TRACKS = """
    SELECT a.id AS album_id, a.title AS album_title, a.artist, a.year, a.rating,
           t.id AS track_id, t.title AS track_title, t.duration_seconds
    FROM albums a
    LEFT JOIN tracks t ON t.album_id = a.id
"""

# Typed so Decimal ratings bind on drivers without native decimals (SQLite).
_RATING = bindparam("rating", type_=Numeric(3, 1))

_INSERT_ALBUM = text(
    """
    INSERT INTO albums (title, artist, year, rating)
    VALUES (:title, :artist, :year, :rating)
    RETURNING id
    """
).bindparams(_RATING)

_UPDATE_ALBUM = text(
    """
    UPDATE albums
    SET title = :title, artist = :artist, year = :year, rating = :rating
    WHERE id = :id
    """
).bindparams(_RATING)

_INSERT_TRACK = """
    INSERT INTO tracks (title, duration_seconds, album_id)
    VALUES (:title, :duration_seconds, :album_id)
"""


def _validate_album(title: str) -> None:
    if not title or not title.strip():
        raise ValidationError("album title must not be empty")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"album title exceeds {TITLE_MAX_LENGTH} characters")


def _require_tracks(tracks: Sequence[NewTrack]) -> None:
    if not tracks:
        raise ValidationError("at least one track must be added")


def _album_params(album: NewAlbum | AlbumRecord) -> dict[str, Any]:
    return {
        "title": album.title,
        "artist": album.artist,
        "year": album.year,
        "rating": album.rating,
    }


class AlbumRepo:
    """
    Each public read/write opens and releases its own connection, except the
    `*_with_ambient` reads (request-shared connection) and distributed writes
    given an outer scope.
    """

    def __init__(
        self,
        provider: ConnectionProvider,
        *,
        cache: TtlCache | None = None,
        ambient: AmbientContext | None = None,
        cache_ttl: float = 300.0,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._ambient = ambient
        self._cache_ttl = cache_ttl

    # -- reads ---------------------------------------------------------------

    async def list_all(self) -> list[AlbumRecord]:
        async with self._provider.connect() as conn:
            rows = await QueryExecutor(conn).query_many(_SELECT_ALBUMS)
        return map_rows(rows, ALBUM)

    async def get_by_id(self, album_id: int) -> AlbumRecord | None:
        async with self._provider.connect() as conn:
            row = await QueryExecutor(conn).query_first_or_none(
                f"{_SELECT_ALBUMS} WHERE id = :id", {"id": album_id}
            )
        return None if row is None else map_row(row, ALBUM)

    async def list_by_artist(self, artist: str) -> list[AlbumRecord]:
        # Case-insensitive substring match, portable across SQLite and PostgreSQL.
        async with self._provider.connect() as conn:
            rows = await QueryExecutor(conn).query_many(
                f"{_SELECT_ALBUMS} WHERE lower(artist) LIKE lower(:pattern) ORDER BY id",
                {"pattern": f"%{artist}%"},
            )
        return map_rows(rows, ALBUM)

    async def get_first_by_year(self, year: int) -> AlbumRecord:
        """First album of `year` ordered by title; `NotFoundError` when there is none."""
        async with self._provider.connect() as conn:
            row = await QueryExecutor(conn).query_first(
                f"{_SELECT_ALBUMS} WHERE year = :year ORDER BY title LIMIT 1", {"year": year}
            )
        return map_row(row, ALBUM)

    async def get_first_or_none_by_title(self, title: str) -> AlbumRecord | None:
        async with self._provider.connect() as conn:
            row = await QueryExecutor(conn).query_first_or_none(
                f"{_SELECT_ALBUMS} WHERE lower(title) LIKE lower(:pattern) ORDER BY id",
                {"pattern": f"%{title}%"},
            )
        return None if row is None else map_row(row, ALBUM)

    async def get_exactly_one_by_id(self, album_id: int) -> AlbumRecord:
        """`NotFoundError` on zero rows, `QueryError` on more than one."""
        async with self._provider.connect() as conn:
            row = await QueryExecutor(conn).query_single(
                f"{_SELECT_ALBUMS} WHERE id = :id", {"id": album_id}
            )
        return map_row(row, ALBUM)

    async def get_single_or_none_by_id(self, album_id: int) -> AlbumRecord | None:
        async with self._provider.connect() as conn:
            row = await QueryExecutor(conn).query_single_or_none(
                f"{_SELECT_ALBUMS} WHERE id = :id", {"id": album_id}
            )
        return None if row is None else map_row(row, ALBUM)

    async def get_with_tracks(self, album_id: int) -> AlbumWithTracks | None:
        async with self._provider.connect() as conn:
            rows = await QueryExecutor(conn).query_many(
                f"{_SELECT_ALBUMS_WITH_TRACKS} WHERE a.id = :album_id ORDER BY t.id",
                {"album_id": album_id},
            )
        albums = self._aggregate(rows)
        # Zero joined rows means the album does not exist.
        return albums[0] if albums else None

    async def list_all_with_tracks(self) -> list[AlbumWithTracks]:
        async with self._provider.connect() as conn:
            rows = await QueryExecutor(conn).query_many(
                f"{_SELECT_ALBUMS_WITH_TRACKS} ORDER BY a.id, t.id"
            )
        return self._aggregate(rows)

    @staticmethod
    def _aggregate(rows) -> list[AlbumWithTracks]:
        return aggregate(
            rows,
            parent=ALBUM_IN_JOIN,
            child=TRACK_IN_JOIN,
            parent_key="album_id",
            child_key="track_id",
            add_child=AlbumWithTracks.add_track,
        )

    async def list_albums_and_tracks(self) -> tuple[list[AlbumRecord], list[TrackRecord]]:
        async with self._provider.connect() as conn:
            album_rows, track_rows = await QueryExecutor(conn).query_multiple(
                [f"{_SELECT_ALBUMS} ORDER BY id", f"{_SELECT_TRACKS} ORDER BY id"]
            )
        return map_rows(album_rows, ALBUM), map_rows(track_rows, TRACK)

    async def list_all_buffered(self) -> list[AlbumRecord]:
        async with self._provider.connect() as conn:
            rows = await QueryExecutor(conn).query_many(f"{_SELECT_ALBUMS} ORDER BY id")
        return map_rows(rows, ALBUM)

    async def stream_all(self) -> AsyncIterator[AlbumRecord]:
        """
        Lazily yield albums ordered by id. The connection is held until the
        iterator is exhausted or closed; consume it under `contextlib.aclosing`.
        """

        async with self._provider.connect() as conn:
            async with aclosing(
                QueryExecutor(conn).query_stream(f"{_SELECT_ALBUMS} ORDER BY id")
            ) as rows:
                async for row in rows:
                    yield map_row(row, ALBUM)

    async def list_all_streaming(self) -> list[AlbumRecord]:
        async with aclosing(self.stream_all()) as albums:
            return [album async for album in albums]

    async def list_all_cached(self) -> list[AlbumRecord]:
        # Not invalidated by writes in this repository; see TtlCache.
        if self._cache is None:
            raise ConfigurationError("no cache configured for this repository")
        # The shared entry is a tuple; each caller gets its own list.
        cached = await self._cache.get_or_load(
            ALL_ALBUMS_CACHE_KEY, self._cache_ttl, self._load_all_frozen
        )
        return list(cached)

    async def _load_all_frozen(self) -> tuple[AlbumRecord, ...]:
        return tuple(await self.list_all())

    def _ambient_connection(self) -> AsyncConnection:
        if self._ambient is None:
            raise ConfigurationError("ambient context is required for this call")
        return self._ambient.connection

    async def list_all_with_ambient(self) -> list[AlbumRecord]:
        rows = await QueryExecutor(self._ambient_connection()).query_many(
            f"{_SELECT_ALBUMS} ORDER BY id"
        )
        return map_rows(rows, ALBUM)

    async def get_by_id_with_ambient(self, album_id: int) -> AlbumRecord | None:
        row = await QueryExecutor(self._ambient_connection()).query_first_or_none(
            f"{_SELECT_ALBUMS} WHERE id = :id", {"id": album_id}
        )
        return None if row is None else map_row(row, ALBUM)

    # -- writes --------------------------------------------------------------

    async def insert(self, album: NewAlbum) -> int:
        _validate_album(album.title)
        async with self._provider.connect() as conn, LocalTransaction(conn):
            album_id = await QueryExecutor(conn).execute_scalar(_INSERT_ALBUM, _album_params(album))
        log.info("album.inserted", album_id=album_id)
        return int(album_id)

    async def update(self, album: AlbumRecord) -> int:
        _validate_album(album.title)
        async with self._provider.connect() as conn, LocalTransaction(conn):
            return await QueryExecutor(conn).execute(
                _UPDATE_ALBUM, {**_album_params(album), "id": album.id}
            )

    async def delete(self, album_id: int) -> int:
        # Tracks go with the album (ON DELETE CASCADE).
        async with self._provider.connect() as conn, LocalTransaction(conn):
            return await QueryExecutor(conn).execute(
                "DELETE FROM albums WHERE id = :id", {"id": album_id}
            )

    async def add_track_via_procedure(self, title: str, duration_seconds: int, album_id: int) -> None:
        async with self._provider.connect() as conn, LocalTransaction(conn):
            await QueryExecutor(conn).call_procedure(
                ADD_TRACK_PROCEDURE,
                {"title": title, "duration_seconds": duration_seconds, "album_id": album_id},
            )

    async def insert_with_tracks_transactional(
        self, album: NewAlbum, tracks: Sequence[NewTrack]
    ) -> int:
        """One connection, one local transaction; rolled back and re-raised on failure."""
        _validate_album(album.title)
        _require_tracks(tracks)
        async with self._provider.connect() as conn, LocalTransaction(conn):
            album_id = await self._write_album_with_tracks(conn, album, tracks)
        log.info("album.inserted_with_tracks", album_id=album_id, tracks=len(tracks), mode="local")
        return album_id

    async def insert_with_tracks_distributed(
        self,
        album: NewAlbum,
        tracks: Sequence[NewTrack],
        *,
        scope: AmbientTransactionScope | None = None,
    ) -> int:
        """
        Write through a connection enlisted in an ambient scope.

        With an outer `scope`, the caller owns completion: nothing is committed
        until it calls `scope.complete()` and leaves its block. Without one, this
        call opens and completes its own scope.
        """

        _validate_album(album.title)
        _require_tracks(tracks)
        if scope is not None:
            conn = await scope.enlist()
            return await self._write_album_with_tracks(conn, album, tracks)

        async with AmbientTransactionScope(self._provider) as own_scope:
            conn = await own_scope.enlist()
            album_id = await self._write_album_with_tracks(conn, album, tracks)
            own_scope.complete()
        log.info("album.inserted_with_tracks", album_id=album_id, tracks=len(tracks), mode="scope")
        return album_id

    async def _write_album_with_tracks(
        self, conn: AsyncConnection, album: NewAlbum, tracks: Sequence[NewTrack]
    ) -> int:
        executor = QueryExecutor(conn)
        album_id = int(await executor.execute_scalar(_INSERT_ALBUM, _album_params(album)))
        for track in tracks:
            await executor.execute(
                _INSERT_TRACK,
                {
                    "title": track.title,
                    "duration_seconds": track.duration_seconds,
                    "album_id": album_id,
                },
            )
        return album_id


# --- Module Notes -----------------------------------------------------------
# Both album+tracks strategies leave identical state: one album row plus N track
# rows on success, nothing on failure.
