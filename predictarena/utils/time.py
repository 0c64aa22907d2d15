"""Time utilities (UTC storage, reference-zone display)."""

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from predictarena.config import settings

REFERENCE_TZ = ZoneInfo(settings.TIMEZONE)


def now_utc() -> datetime:
    """Current instant, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def now_utc_naive() -> datetime:
    """
    Current time in UTC, returned as naive datetime for DB storage.
    """
    return now_utc().replace(tzinfo=None)


def to_utc(dt: datetime, naive_assumed_tz: tzinfo = timezone.utc) -> datetime:
    """Convert datetime to UTC timezone-aware value."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=naive_assumed_tz)
    return dt.astimezone(timezone.utc)


def to_db(dt: datetime) -> datetime:
    """
    Convert an aware datetime to the naive UTC form stored in the DB.
    """
    return to_utc(dt).replace(tzinfo=None)


def from_db(dt: Optional[datetime]) -> Optional[datetime]:
    """DB timestamps are naive UTC; attach the zone on the way out."""
    if dt is None:
        return None
    return to_utc(dt)


def to_reference(dt: datetime) -> datetime:
    """Convert datetime to the reference (CET/CEST) zone."""
    return to_utc(dt).astimezone(REFERENCE_TZ)


def to_reference_iso(dt: datetime) -> str:
    """Convert datetime to the reference zone and return ISO string with offset."""
    return to_reference(dt).isoformat()
