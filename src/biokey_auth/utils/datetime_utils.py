"""
Timezone-aware datetime helpers.

All expiry arithmetic in the application runs on aware UTC datetimes.
MongoDB hands datetimes back naive (implicitly UTC) unless the client is
created with `tz_aware=True`, so values read from the store pass through
`ensure_utc` before being compared.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current UTC time with timezone information."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Return `dt` as an aware UTC datetime.

    Naive values are interpreted as UTC; aware values are converted.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def minutes_from(now: datetime, minutes: int) -> datetime:
    """The instant `minutes` after `now`."""
    return now + timedelta(minutes=minutes)
