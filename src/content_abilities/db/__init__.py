"""Database layer for the SQL content store."""

from content_abilities.db.engine import Database
from content_abilities.db.models import Base, PostRow, PostTermRow, TermRow

__all__ = [
    "Base",
    "Database",
    "PostRow",
    "PostTermRow",
    "TermRow",
]
