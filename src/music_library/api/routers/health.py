"""
music_library.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/healthz`).
- Provide readiness probe (`/readyz`) with DB connectivity validation.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from music_library.api.deps import provider_from_app
from music_library.db.executor import QueryExecutor
from music_library.db.session import ConnectionProvider

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(provider: ConnectionProvider = Depends(provider_from_app)) -> dict[str, str]:
    # Readiness: verify the primary database is reachable.
    async with provider.connect() as conn:
        await QueryExecutor(conn).query_scalar("SELECT 1")
    return {"status": "ready"}
