"""SQLAlchemy ORM models — one file per table."""

from pagewise.models.entry import Entry

__all__ = [
    "Entry",
]
