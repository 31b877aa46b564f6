"""
music_library.api.routers.albums

Album and track endpoints.

Responsibilities:
- Expose each repository read/write path under its own route.
- Translate lookup outcomes into HTTP responses (404 for absent, 4xx/5xx by
  failure kind).
"""

from __future__ import annotations

from collections.abc import Awaitable
from decimal import Decimal
from typing import Any, TypeVar

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_201_CREATED,
    HTTP_204_NO_CONTENT,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_CONTENT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from music_library.api.deps import album_repo, ambient_album_repo, db_session, track_writer
from music_library.db.records import AlbumRecord, NewAlbum, NewTrack
from music_library.db.repositories.albums import AlbumRepo
from music_library.db.repositories.albums_orm import AlbumOrmReader
from music_library.db.repositories.tracks import TrackBatchWriter
from music_library.db.results import Failed, Found, NotFound, attempt

router = APIRouter(prefix="/v1/albums", tags=["albums"])

T = TypeVar("T")

_FAILURE_STATUS = {
    "validation": HTTP_422_UNPROCESSABLE_CONTENT,
    "unique_violation": HTTP_409_CONFLICT,
    "foreign_key_violation": HTTP_409_CONFLICT,
    "check_violation": HTTP_422_UNPROCESSABLE_CONTENT,
    "connection": HTTP_503_SERVICE_UNAVAILABLE,
}


class AlbumIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    artist: str = Field(max_length=200)
    year: int
    rating: Decimal


class AlbumResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    artist: str
    year: int
    rating: Decimal


class TrackIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    duration: int = Field(gt=0)


class TrackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    duration_seconds: int
    album_id: int


class AlbumWithTracksResponse(AlbumResponse):
    tracks: list[TrackResponse] = Field(default_factory=list)


class AlbumsAndTracksResponse(BaseModel):
    albums: list[AlbumResponse]
    tracks: list[TrackResponse]


class AddAlbumWithTracksRequest(BaseModel):
    album_title: str = Field(min_length=1, max_length=200)
    artist: str = Field(max_length=200)
    year: int
    rating: Decimal
    # Emptiness is checked by the repository (ValidationError -> 422).
    tracks: list[TrackIn] = Field(default_factory=list)

    def album(self) -> NewAlbum:
        return NewAlbum(title=self.album_title, artist=self.artist, year=self.year, rating=self.rating)

    def new_tracks(self) -> list[NewTrack]:
        return [NewTrack(title=t.title, duration_seconds=t.duration) for t in self.tracks]


class AddTrackRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    duration_seconds: int = Field(gt=0)
    album_id: int


class IdResponse(BaseModel):
    id: int


class RowsAffectedResponse(BaseModel):
    rows_affected: int


async def _unwrap(awaitable: Awaitable[T | None]) -> T:
    outcome = await attempt(awaitable)
    match outcome:
        case Found(value=value):
            return value
        case NotFound():
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Album not found")
        case Failed(kind=kind, message=message):
            status = _FAILURE_STATUS.get(kind, HTTP_500_INTERNAL_SERVER_ERROR)
            raise HTTPException(status_code=status, detail={"kind": kind, "message": message})
    raise AssertionError(f"unexpected outcome {outcome!r}")


def _albums(records: list[AlbumRecord]) -> list[AlbumResponse]:
    return [AlbumResponse.model_validate(r) for r in records]


@router.get("", response_model=list[AlbumResponse])
async def list_albums(repo: AlbumRepo = Depends(album_repo)) -> list[AlbumResponse]:
    return _albums(await _unwrap(repo.list_all()))


@router.get("/cached", response_model=list[AlbumResponse])
async def list_albums_cached(repo: AlbumRepo = Depends(album_repo)) -> list[AlbumResponse]:
    return _albums(await _unwrap(repo.list_all_cached()))


@router.get("/ambient", response_model=list[AlbumResponse])
async def list_albums_ambient(
    repo: AlbumRepo = Depends(ambient_album_repo),
) -> list[AlbumResponse]:
    return _albums(await _unwrap(repo.list_all_with_ambient()))


@router.get("/buffered", response_model=list[AlbumResponse])
async def list_albums_buffered(repo: AlbumRepo = Depends(album_repo)) -> list[AlbumResponse]:
    return _albums(await _unwrap(repo.list_all_buffered()))


@router.get("/streaming", response_model=list[AlbumResponse])
async def list_albums_streaming(repo: AlbumRepo = Depends(album_repo)) -> list[AlbumResponse]:
    return _albums(await _unwrap(repo.list_all_streaming()))


@router.get("/albums-and-tracks", response_model=AlbumsAndTracksResponse)
async def albums_and_tracks(repo: AlbumRepo = Depends(album_repo)) -> AlbumsAndTracksResponse:
    albums, tracks = await _unwrap(repo.list_albums_and_tracks())
    return AlbumsAndTracksResponse(
        albums=_albums(albums),
        tracks=[TrackResponse.model_validate(t) for t in tracks],
    )


@router.get("/by-artist/{artist}", response_model=list[AlbumResponse])
async def list_by_artist(artist: str, repo: AlbumRepo = Depends(album_repo)) -> list[AlbumResponse]:
    return _albums(await _unwrap(repo.list_by_artist(artist)))


@router.get("/first-by-year/{year}", response_model=AlbumResponse)
async def first_by_year(year: int, repo: AlbumRepo = Depends(album_repo)) -> AlbumResponse:
    return AlbumResponse.model_validate(await _unwrap(repo.get_first_by_year(year)))


@router.get("/single/{album_id}", response_model=AlbumResponse)
async def single_by_id(album_id: int, repo: AlbumRepo = Depends(album_repo)) -> AlbumResponse:
    return AlbumResponse.model_validate(await _unwrap(repo.get_exactly_one_by_id(album_id)))


@router.get("/{album_id}/with-tracks", response_model=AlbumWithTracksResponse)
async def album_with_tracks(
    album_id: int, repo: AlbumRepo = Depends(album_repo)
) -> AlbumWithTracksResponse:
    return AlbumWithTracksResponse.model_validate(await _unwrap(repo.get_with_tracks(album_id)))


@router.get("/{album_id}/orm", response_model=AlbumWithTracksResponse)
async def album_with_tracks_orm(
    album_id: int, session: AsyncSession = Depends(db_session)
) -> AlbumWithTracksResponse:
    album = await AlbumOrmReader(session).get_with_tracks(album_id)
    if album is None:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Album not found")
    return AlbumWithTracksResponse.model_validate(album)


@router.get("/{album_id}", response_model=AlbumResponse)
async def get_album(album_id: int, repo: AlbumRepo = Depends(album_repo)) -> AlbumResponse:
    return AlbumResponse.model_validate(await _unwrap(repo.get_by_id(album_id)))


@router.post("", response_model=IdResponse, status_code=HTTP_201_CREATED)
async def create_album(body: AlbumIn, repo: AlbumRepo = Depends(album_repo)) -> IdResponse:
    new = NewAlbum(title=body.title, artist=body.artist, year=body.year, rating=body.rating)
    return IdResponse(id=await _unwrap(repo.insert(new)))


@router.put("/{album_id}", response_model=RowsAffectedResponse)
async def update_album(
    album_id: int, body: AlbumIn, repo: AlbumRepo = Depends(album_repo)
) -> RowsAffectedResponse:
    record = AlbumRecord(
        id=album_id, title=body.title, artist=body.artist, year=body.year, rating=body.rating
    )
    rows = await _unwrap(repo.update(record))
    if rows == 0:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Album not found")
    return RowsAffectedResponse(rows_affected=rows)


@router.delete("/{album_id}", status_code=HTTP_204_NO_CONTENT)
async def delete_album(album_id: int, repo: AlbumRepo = Depends(album_repo)) -> None:
    rows = await _unwrap(repo.delete(album_id))
    if rows == 0:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="Album not found")


@router.post("/tracks/procedure", status_code=HTTP_204_NO_CONTENT)
async def add_track_via_procedure(
    body: AddTrackRequest, repo: AlbumRepo = Depends(album_repo)
) -> None:
    await _unwrap(_done(repo.add_track_via_procedure(body.title, body.duration_seconds, body.album_id)))


@router.post("/tracks/batch", status_code=HTTP_204_NO_CONTENT)
async def insert_tracks_batch(
    body: list[AddTrackRequest], writer: TrackBatchWriter = Depends(track_writer)
) -> None:
    tracks = [
        NewTrack(title=t.title, duration_seconds=t.duration_seconds, album_id=t.album_id)
        for t in body
    ]
    await _unwrap(_done(writer.insert_many(tracks)))


@router.post("/transactional", response_model=IdResponse, status_code=HTTP_201_CREATED)
async def add_album_transactional(
    body: AddAlbumWithTracksRequest, repo: AlbumRepo = Depends(album_repo)
) -> IdResponse:
    album_id = await _unwrap(repo.insert_with_tracks_transactional(body.album(), body.new_tracks()))
    return IdResponse(id=album_id)


@router.post("/transaction-scope", response_model=IdResponse, status_code=HTTP_201_CREATED)
async def add_album_transaction_scope(
    body: AddAlbumWithTracksRequest, repo: AlbumRepo = Depends(album_repo)
) -> IdResponse:
    album_id = await _unwrap(repo.insert_with_tracks_distributed(body.album(), body.new_tracks()))
    return IdResponse(id=album_id)


async def _done(awaitable: Awaitable[Any]) -> bool:
    # Writes without a result still go through `_unwrap`; report success as a value.
    await awaitable
    return True
