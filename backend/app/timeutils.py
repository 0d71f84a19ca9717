"""
UTC time helpers.

All timestamps are stored and compared in UTC. SQLite hands back naive
datetimes even for timezone-aware columns, so values read from the store go
through ensure_utc() before any arithmetic.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
