"""
music_library.db.results

Explicit lookup outcomes for the HTTP edge.

Responsibilities:
- Distinguish "found", "absent" and "failed" without exception-driven flow
  in callers.
"""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

from music_library.db.errors import DataAccessError, NotFoundError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Found(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class NotFound:
    pass


@dataclass(frozen=True, slots=True)
class Failed:
    kind: str
    message: str


async def attempt(awaitable: Awaitable[T | None]) -> Found[T] | NotFound | Failed:
    """
    Await a repository call and classify the outcome. Errors outside the
    data-access taxonomy are not caught.
    """

    try:
        value = await awaitable
    except NotFoundError:
        return NotFound()
    except DataAccessError as e:
        return Failed(kind=e.kind, message=str(e))
    if value is None:
        return NotFound()
    return Found(value)
