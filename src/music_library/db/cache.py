"""
music_library.db.cache

In-process read cache with a fixed time-to-live.

Responsibilities:
- Memoize loader results under a logical key until an absolute expiry.
- Check expiry lazily on read; nothing runs in the background.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from music_library.observability.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheEntry:
    value: Any
    expires_at: float


class TtlCache:
    """
    Writes to the underlying tables do not invalidate entries: a cached listing
    stays visible until its TTL runs out. Callers that need fresh data after a
    write read around the cache.

    The miss path takes no lock. Two concurrent misses may both run the loader
    and the later store wins; loaders must be read-only.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            # Expired entries are never served; drop it so the next read reloads.
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, *, ttl: float) -> None:
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    async def get_or_load(self, key: str, ttl: float, loader: Callable[[], Awaitable[T]]) -> T:
        entry = self._entries.get(key)
        if entry is not None and self._clock() < entry.expires_at:
            log.debug("cache.hit", key=key)
            return entry.value

        log.debug("cache.miss", key=key)
        # A failing loader propagates; the previous entry (if any) is left as is.
        value = await loader()
        self.set(key, value, ttl=ttl)
        return value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


# --- Module Notes -----------------------------------------------------------
# One instance lives on app.state and is shared by every request; it is the only
# state shared across concurrent callers in the data-access layer.
