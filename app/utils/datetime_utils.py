"""
Timezone-aware datetime helpers.
- Store and compare in UTC.
- Work dates, roster times and pass expiry days are taken in settings.TZ.
"""
from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc


def local_tz() -> ZoneInfo:
    """Configured local zone (settings.TZ)."""
    return ZoneInfo(settings.TZ)


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Default clock for every service call."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to settings.TZ. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(local_tz())


def work_date_for(dt: Optional[datetime] = None) -> date:
    """Calendar date of dt (default now) in settings.TZ."""
    return to_local(dt or now_utc()).date()


def iso_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 in settings.TZ with explicit offset. Use for API response datetime fields."""
    if dt is None:
        return None
    return to_local(dt).isoformat()


def end_of_local_day(day: date) -> datetime:
    """23:59:59.999 of the given local calendar day, as an aware UTC datetime."""
    local_end = datetime.combine(day, time(23, 59, 59, 999000), tzinfo=local_tz())
    return local_end.astimezone(UTC)


def whole_minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero (negative when end < start)."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return int(seconds / 60)
