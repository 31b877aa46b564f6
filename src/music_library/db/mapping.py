"""
music_library.db.mapping

Row-to-record mapping.

Responsibilities:
- Build one record from one result row using a declared `RowShape`.
- Group flat parent+child join rows into parent aggregates.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from decimal import InvalidOperation
from typing import Any, TypeVar

from music_library.db.errors import MappingError
from music_library.db.records import RowShape

T = TypeVar("T")
P = TypeVar("P")
C = TypeVar("C")


def map_row(row: Mapping[str, Any], shape: RowShape[T]) -> T:
    missing = [name for name in shape.column_names if name not in row]
    if missing:
        raise MappingError(f"{shape.name}: row is missing column(s) {', '.join(missing)}")

    values: dict[str, Any] = {}
    for column in shape.columns:
        value = row[column.name]
        if column.convert is not None:
            try:
                value = column.convert(value)
            except (TypeError, ValueError, InvalidOperation) as e:
                raise MappingError(f"{shape.name}: cannot convert column {column.name}: {e}") from e
        values[column.field] = value
    return shape.build(**values)


def map_rows(rows: Iterable[Mapping[str, Any]], shape: RowShape[T]) -> list[T]:
    return [map_row(row, shape) for row in rows]


def aggregate(
    rows: Iterable[Mapping[str, Any]],
    *,
    parent: RowShape[P],
    child: RowShape[C],
    parent_key: str,
    child_key: str,
    add_child: Callable[[P, C], None],
) -> list[P]:
    """
    Group one-to-many join rows by parent identity.

    The parent fields of each distinct `parent_key` are materialized once; every
    row whose `child_key` is not null contributes one child, in row order. The
    result keeps first-encounter order of parents. Any malformed row raises
    `MappingError` and nothing is returned.
    """

    by_key: dict[Any, P] = {}
    for row in rows:
        if parent_key not in row or child_key not in row:
            raise MappingError(f"join row is missing key column {parent_key!r} or {child_key!r}")

        key = row[parent_key]
        entry = by_key.get(key)
        if entry is None:
            entry = map_row(row, parent)
            by_key[key] = entry

        # Null child key: outer-join row for a parent without children.
        if row[child_key] is not None:
            add_child(entry, map_row(row, child))

    return list(by_key.values())
