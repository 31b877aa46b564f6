"""
music_library.api.app

FastAPI app factory for the Music Library service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Initialize and dispose shared infrastructure (engines, connection providers,
  read cache, ORM session factory).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from music_library.api.routers.albums import router as albums_router
from music_library.api.routers.health import router as health_router
from music_library.api.routers.reports import router as reports_router
from music_library.db.cache import TtlCache
from music_library.db.init_db import init_db
from music_library.db.session import ConnectionProvider, create_engine, create_sessionmaker
from music_library.observability.logging import configure_logging, get_logger
from music_library.observability.middleware import RequestContextMiddleware
from music_library.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, sql_echo=settings.sql_echo
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await _startup(app, settings)
        try:
            yield
        finally:
            await _shutdown(app)

    app = FastAPI(
        title="Music Library",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(albums_router)
    app.include_router(reports_router)
    return app


async def _startup(app: FastAPI, settings: Settings) -> None:
    log.info("startup", env=settings.env)
    engine = create_engine(settings.database_url)
    app.state.engine = engine
    app.state.provider = ConnectionProvider(engine)
    app.state.sessionmaker = create_sessionmaker(engine)

    # Reporting reads get their own engine only when a separate URL is configured.
    if settings.reports_database_url:
        report_engine = create_engine(settings.reports_database_url)
        app.state.report_engine = report_engine
        app.state.report_provider = ConnectionProvider(report_engine)
    else:
        app.state.report_engine = None
        app.state.report_provider = app.state.provider

    app.state.cache = TtlCache()
    if settings.env in ("dev", "test"):
        # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
        await init_db(engine)


async def _shutdown(app: FastAPI) -> None:
    # Dispose engines to close pools/FDs gracefully.
    for name in ("engine", "report_engine"):
        engine = getattr(app.state, name, None)
        if engine is not None:
            await engine.dispose()
    log.info("shutdown")


# --- Module Notes -----------------------------------------------------------
# App composition stays here; SQL and transaction handling stay in `music_library.db`.
