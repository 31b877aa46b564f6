"""
music_library.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, connection providers, the cache
  and ORM sessions.
- Open one ambient context per request for the ambient read path.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from music_library.db.ambient import AmbientContext
from music_library.db.cache import TtlCache
from music_library.db.repositories.albums import AlbumRepo
from music_library.db.repositories.reports import ReportRepo
from music_library.db.repositories.tracks import TrackBatchWriter
from music_library.db.session import ConnectionProvider
from music_library.settings import Settings, get_settings


def settings_dep(request: Request) -> Settings:
    # Settings handed to `create_app`; falls back to env settings outside the app.
    return getattr(request.app.state, "settings", None) or get_settings()


# Shared infrastructure is created on app startup in `music_library.api.app.create_app`.
def provider_from_app(request: Request) -> ConnectionProvider:
    return request.app.state.provider  # type: ignore[attr-defined]


def report_provider_from_app(request: Request) -> ConnectionProvider:
    return request.app.state.report_provider  # type: ignore[attr-defined]


def cache_from_app(request: Request) -> TtlCache:
    return request.app.state.cache  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


async def ambient_context(
    provider: ConnectionProvider = Depends(provider_from_app),
) -> AsyncIterator[AmbientContext]:
    # Request-scoped: opened before the handler runs, closed after the response.
    async with AmbientContext(provider) as ctx:
        yield ctx


def album_repo(
    provider: ConnectionProvider = Depends(provider_from_app),
    cache: TtlCache = Depends(cache_from_app),
    settings: Settings = Depends(settings_dep),
) -> AlbumRepo:
    return AlbumRepo(provider, cache=cache, cache_ttl=settings.cache_ttl_seconds)


def ambient_album_repo(
    provider: ConnectionProvider = Depends(provider_from_app),
    ctx: AmbientContext = Depends(ambient_context),
) -> AlbumRepo:
    return AlbumRepo(provider, ambient=ctx)


def track_writer(provider: ConnectionProvider = Depends(provider_from_app)) -> TrackBatchWriter:
    return TrackBatchWriter(provider)


def report_repo(
    provider: ConnectionProvider = Depends(report_provider_from_app),
) -> ReportRepo:
    return ReportRepo(provider)
