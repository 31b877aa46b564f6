"""
tests.test_smoke

Smoke tests to validate the service can boot and serve core endpoints.

Responsibilities:
- Ensure the FastAPI app starts and the DB readiness probe works in test mode.
- Exercise the album routes end to end, including failure-to-status mapping.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio

from music_library.api.app import create_app
from music_library.settings import Settings


@pytest_asyncio.fixture
async def client(tmp_path) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(
        settings=Settings(env="test", database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    )

    # httpx ASGITransport does not manage lifespan; run it explicitly.
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c


@pytest.mark.asyncio
async def test_health_endpoints(client) -> None:
    r = await client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"

    r = await client.get("/readyz")
    assert r.status_code == 200
    assert r.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_album_lifecycle(client) -> None:
    r = await client.post(
        "/v1/albums",
        json={"title": "Thriller", "artist": "Michael Jackson", "year": 1982, "rating": "4.8"},
    )
    assert r.status_code == 201
    album_id = r.json()["id"]

    r = await client.get(f"/v1/albums/{album_id}")
    assert r.status_code == 200
    assert r.json()["title"] == "Thriller"

    r = await client.get("/v1/albums/ambient")
    assert [a["title"] for a in r.json()] == ["Thriller"]

    r = await client.delete(f"/v1/albums/{album_id}")
    assert r.status_code == 204

    r = await client.get(f"/v1/albums/{album_id}")
    assert r.status_code == 404
    r = await client.get("/v1/albums/single/999")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_album_with_tracks_routes(client) -> None:
    body = {
        "album_title": "Nevermind",
        "artist": "Nirvana",
        "year": 1991,
        "rating": "4.7",
        "tracks": [{"title": "Breed", "duration": 184}, {"title": "Lithium", "duration": 257}],
    }
    r = await client.post("/v1/albums/transactional", json=body)
    assert r.status_code == 201
    album_id = r.json()["id"]

    r = await client.get(f"/v1/albums/{album_id}/with-tracks")
    assert [t["title"] for t in r.json()["tracks"]] == ["Breed", "Lithium"]

    r = await client.get(f"/v1/albums/{album_id}/orm")
    assert len(r.json()["tracks"]) == 2

    r = await client.post("/v1/albums/transaction-scope", json={**body, "tracks": []})
    assert r.status_code == 422
    assert r.json()["detail"]["kind"] == "validation"

    r = await client.get("/v1/reports/track-count")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_batch_with_unknown_album_conflicts(client) -> None:
    r = await client.post(
        "/v1/albums/tracks/batch",
        json=[{"title": "Orphan", "duration_seconds": 100, "album_id": 999}],
    )
    assert r.status_code == 409
    assert r.json()["detail"]["kind"] == "foreign_key_violation"
