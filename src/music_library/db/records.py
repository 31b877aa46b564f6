"""
music_library.db.records

Plain records returned by the direct-SQL read path, and the row shapes that
produce them.

Responsibilities:
- Define immutable album/track records and the album-with-tracks aggregate.
- Declare, per row shape, which result column feeds which record field.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class AlbumRecord:
    id: int
    title: str
    artist: str
    year: int
    rating: Decimal


@dataclass(frozen=True, slots=True)
class NewAlbum:
    """Album fields for an insert; identity is assigned by storage."""

    title: str
    artist: str
    year: int
    rating: Decimal


@dataclass(frozen=True, slots=True)
class TrackRecord:
    id: int
    title: str
    duration_seconds: int
    album_id: int


@dataclass(frozen=True, slots=True)
class NewTrack:
    """A track to be written; identity is assigned by storage."""

    title: str
    duration_seconds: int
    album_id: int | None = None


@dataclass(slots=True)
class AlbumWithTracks:
    """Aggregate view: one album and its tracks in row-encounter order. Never persisted."""

    id: int
    title: str
    artist: str
    year: int
    rating: Decimal
    tracks: list[TrackRecord] = field(default_factory=list)

    def add_track(self, track: TrackRecord) -> None:
        self.tracks.append(track)

    @property
    def track_count(self) -> int:
        return len(self.tracks)

    @property
    def average_duration(self) -> float:
        if not self.tracks:
            return 0.0
        return sum(t.duration_seconds for t in self.tracks) / len(self.tracks)


@dataclass(frozen=True, slots=True)
class AlbumReportRow:
    id: int
    title: str
    artist: str
    track_count: int
    avg_duration: float


def to_decimal(value: Any) -> Decimal:
    # SQLite hands back floats for NUMERIC; go through str to keep 4.8 == Decimal("4.8").
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_float(value: Any) -> float:
    return 0.0 if value is None else float(value)


@dataclass(frozen=True, slots=True)
class Column:
    """One result column bound to one record field."""

    name: str
    field: str
    convert: Callable[[Any], Any] | None = None


@dataclass(frozen=True, slots=True)
class RowShape(Generic[T]):
    name: str
    build: Callable[..., T]
    columns: tuple[Column, ...]

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)


ALBUM = RowShape(
    name="album",
    build=AlbumRecord,
    columns=(
        Column("id", "id"),
        Column("title", "title"),
        Column("artist", "artist"),
        Column("year", "year"),
        Column("rating", "rating", to_decimal),
    ),
)

TRACK = RowShape(
    name="track",
    build=TrackRecord,
    columns=(
        Column("id", "id"),
        Column("title", "title"),
        Column("duration_seconds", "duration_seconds"),
        Column("album_id", "album_id"),
    ),
)

# Join shapes: album columns are aliased `album_*`, track columns `track_*`.
ALBUM_IN_JOIN = RowShape(
    name="album_in_join",
    build=AlbumWithTracks,
    columns=(
        Column("album_id", "id"),
        Column("album_title", "title"),
        Column("artist", "artist"),
        Column("year", "year"),
        Column("rating", "rating", to_decimal),
    ),
)

TRACK_IN_JOIN = RowShape(
    name="track_in_join",
    build=TrackRecord,
    columns=(
        Column("track_id", "id"),
        Column("track_title", "title"),
        Column("duration_seconds", "duration_seconds"),
        Column("album_id", "album_id"),
    ),
)

ALBUM_REPORT = RowShape(
    name="album_report",
    build=AlbumReportRow,
    columns=(
        Column("id", "id"),
        Column("title", "title"),
        Column("artist", "artist"),
        Column("track_count", "track_count", int),
        Column("avg_duration", "avg_duration", to_float),
    ),
)
