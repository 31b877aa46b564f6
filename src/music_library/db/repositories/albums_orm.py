"""
music_library.db.repositories.albums_orm

ORM read strategy for albums.

Responsibilities:
- Load albums with their tracks through mapped relationships, for callers that
  want the full object graph rather than a flat projection.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from music_library.db.models import Album


class AlbumOrmReader:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_with_tracks(self, album_id: int) -> Album | None:
        stmt = select(Album).options(selectinload(Album.tracks)).where(Album.id == album_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_all(self) -> list[Album]:
        stmt = select(Album).order_by(Album.id)
        return list((await self._session.execute(stmt)).scalars().all())
