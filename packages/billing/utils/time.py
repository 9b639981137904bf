"""Timestamp conversions between Stripe epoch seconds and stored datetimes."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_unix(seconds: Optional[int]) -> Optional[datetime]:
    """Convert Stripe epoch seconds to an aware datetime; 0 and None mean unset."""
    if not seconds:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
