"""
music_library.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide table models, engine/connection setup and repositories.
- Row mapping, query execution, transactions and the read cache.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Repositories speak SQL through `executor.QueryExecutor`; the ORM session is only
# used by the explicit ORM read strategy in `repositories.albums_orm`.
