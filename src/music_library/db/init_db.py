"""
music_library.db.init_db

Schema bootstrap for local development and tests.

Responsibilities:
- Create the albums/tracks tables from model metadata when they are missing.
- Leave the production path (Alembic, stored procedure) untouched.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from music_library.db import models  # noqa: F401  # register tables on Base.metadata
from music_library.db.base import Base
from music_library.observability.logging import get_logger

log = get_logger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    """
    Create missing tables. Production relies on Alembic migrations, which also
    install the `add_track_and_update_album` procedure (PostgreSQL only).
    """

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("db.init", dialect=engine.dialect.name, tables=sorted(Base.metadata.tables))
