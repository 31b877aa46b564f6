"""
music_library.db.models

Storage schema: albums and their tracks.

Responsibilities:
- Define the two tables (DDL source for `init_db` and Alembic).
- Back the ORM read strategy with a mapped one-to-many relationship.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from music_library.db.base import Base

TITLE_MAX_LENGTH = 200


class Album(Base):
    __tablename__ = "albums"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    artist: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    rating: Mapped[Decimal] = mapped_column(Numeric(3, 1), nullable=False)

    # Deletes are cascaded by the FK; passive_deletes keeps the ORM out of the way.
    tracks: Mapped[list[Track]] = relationship(
        back_populates="album",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Track.id",
    )

    __table_args__ = (CheckConstraint("length(title) > 0", name="title_not_empty"),)


class Track(Base):
    __tablename__ = "tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    album_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("albums.id", ondelete="CASCADE"), nullable=False, index=True
    )

    album: Mapped[Album] = relationship(back_populates="tracks")

    __table_args__ = (
        CheckConstraint("duration_seconds > 0", name="duration_positive"),
    )
