"""UTC time helpers shared by models, workflows and serializers."""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return current UTC time without microseconds."""
    return datetime.now(UTC).replace(microsecond=0)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    SQLite hands back naive datetimes for columns written as UTC, so a naive
    value is assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat_z(value: datetime) -> str:
    """Format datetime as ISO 8601 in UTC with a Z suffix (2026-01-19T12:34:56Z)."""
    return as_utc(value).replace(microsecond=0).isoformat().replace("+00:00", "Z")
