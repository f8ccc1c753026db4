"""Time helpers: everything is stored as naive UTC"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize an incoming datetime to naive UTC.

    Aware values are converted to UTC; naive values are assumed to already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed from start to end (floored)"""
    return int((end - start) // timedelta(minutes=1))
