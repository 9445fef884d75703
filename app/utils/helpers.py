"""
Helper utilities
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional, Tuple
import uuid

def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)

def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes

    SQLite hands timestamps back without tzinfo; everything is stored in UTC
    so a naive value is read as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def enum_value(value: Any) -> str:
    """Return the tag for an enum member or the string form of anything else"""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)

def day_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """
    Start and end of the day containing now

    Args:
        now: Reference time

    Returns:
        (start_of_day, start_of_next_day)
    """
    start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)

def week_start(now: datetime) -> datetime:
    """Monday 00:00 of the week containing now"""
    start, _ = day_bounds(now)
    return start - timedelta(days=now.weekday())

def parse_uuid(value: Any) -> Optional[uuid.UUID]:
    """Coerce a UUID or its string form; None when it is not a valid id"""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None
