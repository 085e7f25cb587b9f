"""
Datetime utility functions.
Provides replacements for deprecated datetime functions.
"""

from datetime import datetime
from typing import Optional
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to a naive datetime (as returned by SQLite) so it can be
    compared with utcnow().

    Args:
        value: Datetime that may or may not carry tzinfo

    Returns:
        Timezone-aware datetime, or None when value is None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value


def isoformat_or_none(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for API responses."""
    return value.isoformat() if value else None
