"""Datetime helpers for ledger and production run timestamps.

All timestamps are stored in UTC. SQLite hands DateTime columns back
without tzinfo, so values read from the database go through ``as_utc``
before they are compared or serialized.

Usage:
    from prep_ledger.utils.datetime_utils import utc_now

    created_at = Column(DateTime, default=utc_now)
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC tzinfo to a naive datetime read back from the database.

    Args:
        value: Datetime or None

    Returns:
        Timezone-aware datetime, or None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string in UTC, or None."""
    value = as_utc(value)
    return value.isoformat() if value else None
