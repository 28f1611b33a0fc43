"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes.

    SQLite returns DateTime(timezone=True) columns without tzinfo; all
    stored values are written in UTC, so naive values are UTC.

    Args:
        value: Datetime read from the database

    Returns:
        Timezone-aware datetime or None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
