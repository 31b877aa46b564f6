"""
tests.conftest

Shared fixtures: a fresh SQLite file database per test, plus seed helpers.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from music_library.db.init_db import init_db
from music_library.db.session import ConnectionProvider, create_engine


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    eng = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'music.db'}")
    await init_db(eng)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest.fixture
def provider(engine: AsyncEngine) -> ConnectionProvider:
    return ConnectionProvider(engine)


async def seed_albums(engine: AsyncEngine, *albums: tuple[str, str, int, float]) -> list[int]:
    ids: list[int] = []
    async with engine.begin() as conn:
        for title, artist, year, rating in albums:
            result = await conn.execute(
                text(
                    "INSERT INTO albums (title, artist, year, rating) "
                    "VALUES (:title, :artist, :year, :rating) RETURNING id"
                ),
                {"title": title, "artist": artist, "year": year, "rating": rating},
            )
            ids.append(result.scalar_one())
    return ids


async def seed_tracks(engine: AsyncEngine, album_id: int, *tracks: tuple[str, int]) -> None:
    async with engine.begin() as conn:
        for title, duration in tracks:
            await conn.execute(
                text(
                    "INSERT INTO tracks (title, duration_seconds, album_id) "
                    "VALUES (:title, :duration, :album_id)"
                ),
                {"title": title, "duration": duration, "album_id": album_id},
            )


async def count_rows(engine: AsyncEngine, table: str) -> int:
    async with engine.connect() as conn:
        return (await conn.execute(text(f"SELECT COUNT(*) FROM {table}"))).scalar_one()


CLASSIC_ALBUMS = (
    ("Thriller", "Michael Jackson", 1982, 4.8),
    ("Back in Black", "AC/DC", 1980, 4.6),
    ("Dark Side of the Moon", "Pink Floyd", 1973, 4.9),
)
