"""
music_library.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Carry the primary and reporting connection strings.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Env-driven configuration; defaults are safe for local dev.
    A single settings object is injected across layers.
    """

    model_config = SettingsConfigDict(env_prefix="MUSICLIB_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "music-library"
    log_level: str = "INFO"
    # Emit SQLAlchemy engine statement logs at INFO.
    sql_echo: bool = False

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./music_library.db"
    # Isolated reporting reads; falls back to `database_url` when unset.
    reports_database_url: str | None = Field(default=None)

    # Full album listing cache window.
    cache_ttl_seconds: float = 300.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Connection strings are the only collaborator the data-access layer consumes from
# configuration; everything else here is API/process wiring.
