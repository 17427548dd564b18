# medaccess/app/core/dates.py
from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def date_is_expired(value: datetime, offset_seconds: float = 0, now: Optional[datetime] = None) -> bool:
    """
    True when ``value + offset_seconds`` lies in the past.

    A positive offset moves the deadline into the future, so
    ``date_is_expired(sent_at, 300)`` reads "was sent more than 5 minutes ago".
    """
    now = now or utcnow()
    return ensure_aware(value) + timedelta(seconds=offset_seconds) < now


def seconds_since(value: datetime, now: Optional[datetime] = None) -> float:
    now = now or utcnow()
    return (now - ensure_aware(value)).total_seconds()
