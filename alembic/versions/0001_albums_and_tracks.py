"""albums and tracks

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_ADD_TRACK_PROCEDURE = """
CREATE OR REPLACE PROCEDURE add_track_and_update_album(
    p_title VARCHAR, p_duration_seconds INTEGER, p_album_id INTEGER
)
LANGUAGE plpgsql
AS $$
BEGIN
    INSERT INTO tracks (title, duration_seconds, album_id)
    VALUES (p_title, p_duration_seconds, p_album_id);
END;
$$;
"""


def upgrade() -> None:
    op.create_table(
        "albums",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("artist", sa.String(200), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Numeric(3, 1), nullable=False),
        sa.CheckConstraint("length(title) > 0", name=op.f("ck_albums_title_not_empty")),
    )
    op.create_table(
        "tracks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column(
            "album_id",
            sa.Integer(),
            sa.ForeignKey("albums.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.CheckConstraint("duration_seconds > 0", name=op.f("ck_tracks_duration_positive")),
    )
    op.create_index("ix_tracks_album_id", "tracks", ["album_id"])

    if op.get_bind().dialect.name == "postgresql":
        op.execute(_ADD_TRACK_PROCEDURE)


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP PROCEDURE IF EXISTS add_track_and_update_album(VARCHAR, INTEGER, INTEGER)")
    op.drop_index("ix_tracks_album_id", table_name="tracks")
    op.drop_table("tracks")
    op.drop_table("albums")
