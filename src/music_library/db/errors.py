"""
music_library.db.errors

Data-access error taxonomy.

Responsibilities:
- Name every failure the data-access layer can surface (connection, query,
  mapping, validation, not-found, configuration).
- Translate SQLAlchemy/DBAPI errors into that taxonomy, keeping the statement
  intent and the constraint class for diagnostics.
"""

from __future__ import annotations

import enum

from sqlalchemy import exc as sa_exc


class StatementIntent(enum.StrEnum):
    read = "read"
    write = "write"
    procedure = "procedure"


class DataAccessError(Exception):
    """Base class; `kind` is a stable label used by the API layer and logs."""

    kind = "data_access"


class DatabaseConnectionError(DataAccessError):
    kind = "connection"


class QueryError(DataAccessError):
    kind = "query"

    def __init__(self, message: str, *, intent: StatementIntent, statement: str | None = None):
        super().__init__(message)
        self.intent = intent
        self.statement = statement


class UniqueViolationError(QueryError):
    kind = "unique_violation"


class ForeignKeyViolationError(QueryError):
    kind = "foreign_key_violation"


class CheckViolationError(QueryError):
    kind = "check_violation"


class MappingError(DataAccessError):
    kind = "mapping"


class ValidationError(DataAccessError):
    kind = "validation"


class NotFoundError(DataAccessError):
    kind = "not_found"


class ConfigurationError(DataAccessError):
    kind = "configuration"


# SQLSTATE class 23 codes (PostgreSQL); SQLite only reports them in the message text.
_SQLSTATE_TO_ERROR: dict[str, type[QueryError]] = {
    "23505": UniqueViolationError,
    "23503": ForeignKeyViolationError,
    "23514": CheckViolationError,
}

_MESSAGE_TO_ERROR: tuple[tuple[str, type[QueryError]], ...] = (
    ("unique", UniqueViolationError),
    ("foreign key", ForeignKeyViolationError),
    ("check constraint", CheckViolationError),
)


def _integrity_error_class(error: sa_exc.IntegrityError) -> type[QueryError]:
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in _SQLSTATE_TO_ERROR:
        return _SQLSTATE_TO_ERROR[code]
    text = str(orig).lower()
    for needle, error_cls in _MESSAGE_TO_ERROR:
        if needle in text:
            return error_cls
    return QueryError


def translate_db_error(
    error: sa_exc.DBAPIError, *, intent: StatementIntent, statement: str | None = None
) -> QueryError:
    error_cls = _integrity_error_class(error) if isinstance(error, sa_exc.IntegrityError) else QueryError
    message = f"{intent} statement failed: {error.orig}"
    return error_cls(message, intent=intent, statement=statement)


# --- Module Notes -----------------------------------------------------------
# `NotFoundError` is only raised by operations whose contract is "exactly one" or
# "first"; optional lookups return None instead. See `db.results` for the explicit
# Found/NotFound/Failed shape used at the HTTP edge.
