"""
tests.test_migrations

The Alembic revision and the dev/test bootstrap must produce the same
constraint names.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic import command
from alembic.config import Config
from sqlalchemy import text

ROOT = Path(__file__).resolve().parents[1]

CONSTRAINTS = {
    "albums": "ck_albums_title_not_empty",
    "tracks": "ck_tracks_duration_positive",
}


def _table_sql(conn, table: str) -> str:
    return conn.execute(
        text("SELECT sql FROM sqlite_master WHERE type = 'table' AND name = :name"),
        {"name": table},
    ).scalar_one()


def test_migration_names_constraints_by_convention(tmp_path, monkeypatch) -> None:
    db_path = tmp_path / "migrated.db"
    monkeypatch.setenv("MUSICLIB_DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    config = Config()
    config.set_main_option("script_location", str(ROOT / "alembic"))

    command.upgrade(config, "head")

    engine = sa.create_engine(f"sqlite:///{db_path}")
    try:
        with engine.connect() as conn:
            for table, name in CONSTRAINTS.items():
                assert name in _table_sql(conn, table)
            indexes = conn.execute(
                text("SELECT name FROM sqlite_master WHERE type = 'index' AND tbl_name = 'tracks'")
            ).scalars().all()
            assert "ix_tracks_album_id" in indexes
    finally:
        engine.dispose()


@pytest.mark.asyncio
async def test_bootstrap_uses_the_same_constraint_names(engine) -> None:
    async with engine.connect() as conn:
        for table, name in CONSTRAINTS.items():
            sql = await conn.run_sync(lambda sync_conn, t=table: _table_sql(sync_conn, t))
            assert name in sql
