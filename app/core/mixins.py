"""Reusable model mixins.

Provides common field patterns for SQLModel table definitions.
"""

from datetime import datetime

from sqlalchemy import text
from sqlmodel import Field

from app.core.clock import utc_now


class CreatedAtMixin:
    """Mixin for append-only rows that only record creation time."""

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )


class TimestampMixin(CreatedAtMixin):
    """Mixin that adds created_at and updated_at timestamps.

    Timestamps are stored without microseconds for cleaner output.

    Usage:
        class Member(TimestampMixin, SQLModel, table=True):
            id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
            email: str
    """

    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column_kwargs={
            "server_default": text("CURRENT_TIMESTAMP"),
            "onupdate": utc_now,
        },
    )
