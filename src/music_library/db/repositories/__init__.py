"""
music_library.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for the persistence layer.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Two read strategies exist side by side: direct SQL (`albums`, `reports`) for
# projections and the ORM (`albums_orm`) for relationship loads. Callers pick one.
