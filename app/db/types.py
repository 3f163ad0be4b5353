"""Column types shared by table models."""

from sqlalchemy import JSON, Column, String
from sqlalchemy.dialects.postgresql import ARRAY

# Native text[] on PostgreSQL, JSON elsewhere (SQLite in tests and local dev).
StringList = JSON().with_variant(ARRAY(String()), "postgresql")


def string_list_column() -> Column:
    """Build a non-null list-of-strings column.

    A Column instance can only be bound to one table, so every model field
    needs its own.
    """
    return Column(StringList, nullable=False)
