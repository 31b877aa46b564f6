"""
tests.test_reports

Reporting reads and the ORM read strategy.
"""

from __future__ import annotations

import pytest

from conftest import CLASSIC_ALBUMS, seed_albums, seed_tracks
from music_library.db.repositories.albums_orm import AlbumOrmReader
from music_library.db.repositories.reports import ReportRepo
from music_library.db.session import create_sessionmaker


@pytest.mark.asyncio
async def test_track_count_and_top_albums(engine, provider) -> None:
    thriller, back_in_black, _ = await seed_albums(engine, *CLASSIC_ALBUMS)
    await seed_tracks(engine, thriller, ("Beat It", 258), ("Billie Jean", 294))
    await seed_tracks(engine, back_in_black, ("Hells Bells", 312))
    repo = ReportRepo(provider)

    assert await repo.total_track_count() == 3

    report = await repo.top_albums(limit=10)
    assert [(r.title, r.track_count) for r in report] == [
        ("Thriller", 2),
        ("Back in Black", 1),
        ("Dark Side of the Moon", 0),
    ]
    assert report[0].avg_duration == 276.0
    assert report[2].avg_duration == 0.0

    assert len(await repo.top_albums(limit=1)) == 1


@pytest.mark.asyncio
async def test_empty_database_reports_zero(provider) -> None:
    repo = ReportRepo(provider)
    assert await repo.total_track_count() == 0
    assert await repo.top_albums() == []


@pytest.mark.asyncio
async def test_orm_reader_loads_tracks(engine) -> None:
    [album_id] = await seed_albums(engine, CLASSIC_ALBUMS[0])
    await seed_tracks(engine, album_id, ("Beat It", 258), ("Billie Jean", 294))
    sessionmaker = create_sessionmaker(engine)

    async with sessionmaker() as session:
        reader = AlbumOrmReader(session)
        album = await reader.get_with_tracks(album_id)
        assert album is not None
        assert [t.title for t in album.tracks] == ["Beat It", "Billie Jean"]
        assert await reader.get_with_tracks(999) is None
        assert [a.title for a in await reader.list_all()] == ["Thriller"]
