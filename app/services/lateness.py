"""
Lateness relative to an employee's roster.

Results are derived only from the check-in instant, the roster start time
and the grace period, never from a stored "late" flag, so they stay correct
when a roster is reassigned after the fact.

Roster times are wall-clock times in settings.TZ. Instants are converted to
that zone first; naive datetimes (as read back from SQLite) are UTC.
"""
import enum
import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Any, Union

from app.core.constants import LATE_MAJOR_MAX_MINUTES, LATE_MINOR_MAX_MINUTES
from app.utils.datetime_utils import to_local, whole_minutes_between

_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9](?::[0-5][0-9])?$")


class LateSeverity(str, enum.Enum):
    NONE = "none"
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


@dataclass(frozen=True)
class LateDuration:
    is_late: bool
    late_minutes: int
    grace_period_used: int
    actual_check_in: datetime
    roster_start: datetime
    formatted: str


@dataclass(frozen=True)
class LateDurationInfo:
    display: str
    severity: LateSeverity
    description: str


@dataclass(frozen=True)
class EarlyDeparture:
    is_early: bool
    early_minutes: int
    roster_end: datetime


def _as_time(value: Union[time, str]) -> time:
    if isinstance(value, time):
        return value
    if not validate_roster_time(value):
        raise ValueError(f"Invalid roster time: {value!r}")
    parts = [int(p) for p in value.split(":")]
    return time(*parts)


def _on_same_day(dt: datetime, at: time) -> datetime:
    """``at`` on the calendar day of ``dt``, in dt's zone."""
    return datetime.combine(dt.date(), at.replace(microsecond=0), tzinfo=dt.tzinfo)


def calculate_late_duration(check_in: datetime, roster: Any) -> LateDuration:
    """
    Lateness of ``check_in`` against ``roster.start_time`` plus grace.

    Args:
        check_in: check-in instant
        roster: object with ``start_time`` (time or "HH:MM") and ``grace_period_minutes``

    Returns:
        LateDuration with ``late_minutes = max(0, diff - grace)``
    """
    actual = to_local(check_in)
    roster_start = _on_same_day(actual, _as_time(roster.start_time))
    diff = whole_minutes_between(roster_start, actual)
    grace = roster.grace_period_minutes or 0

    late_minutes = max(0, diff - grace)
    return LateDuration(
        is_late=late_minutes > 0,
        late_minutes=late_minutes,
        grace_period_used=min(grace, max(0, diff)),
        actual_check_in=actual,
        roster_start=roster_start,
        formatted=format_late_duration(late_minutes),
    )


def format_late_duration(minutes: int) -> str:
    """``-`` when not late, ``25M`` under an hour, ``1H 05M`` otherwise."""
    if minutes <= 0:
        return "-"
    hours, remaining = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}H {remaining:02d}M"
    return f"{remaining}M"


def late_severity(late_minutes: int) -> LateSeverity:
    if late_minutes <= 0:
        return LateSeverity.NONE
    if late_minutes <= LATE_MINOR_MAX_MINUTES:
        return LateSeverity.MINOR
    if late_minutes <= LATE_MAJOR_MAX_MINUTES:
        return LateSeverity.MAJOR
    return LateSeverity.CRITICAL


def get_late_duration_info(check_in: datetime, roster: Any) -> LateDurationInfo:
    """Display label and severity band for a check-in."""
    calculation = calculate_late_duration(check_in, roster)
    severity = late_severity(calculation.late_minutes)
    if severity == LateSeverity.NONE:
        return LateDurationInfo("On Time", severity, "Arrived within grace period")
    description = {
        LateSeverity.MINOR: "Slightly late",
        LateSeverity.MAJOR: "Significantly late",
        LateSeverity.CRITICAL: "Very late",
    }[severity]
    return LateDurationInfo(calculation.formatted, severity, description)


def calculate_early_departure(check_out: datetime, roster: Any) -> EarlyDeparture:
    """
    Minutes a check-out falls before roster end, beyond the early-departure threshold.
    """
    actual = to_local(check_out)
    roster_end = _on_same_day(actual, _as_time(roster.end_time))
    before_end = whole_minutes_between(actual, roster_end)
    threshold = roster.early_departure_threshold_minutes or 0
    early_minutes = max(0, before_end - threshold)
    return EarlyDeparture(is_early=early_minutes > 0, early_minutes=early_minutes, roster_end=roster_end)


def validate_roster_time(value: str) -> bool:
    """HH:MM or HH:MM:SS on a 24h clock."""
    return bool(_TIME_RE.match(value or ""))


def time_string_to_minutes(value: str) -> int:
    t = _as_time(value)
    return t.hour * 60 + t.minute


def minutes_to_time_string(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def calculate_expected_working_hours(roster: Any) -> float:
    """Roster span minus its break, in hours. Shifts ending past midnight wrap to the next day."""
    start = _as_time(roster.start_time)
    end = _as_time(roster.end_time)
    span = timedelta(hours=end.hour, minutes=end.minute) - timedelta(hours=start.hour, minutes=start.minute)
    if span <= timedelta(0):
        span += timedelta(days=1)
    total_minutes = span.total_seconds() / 60 - (roster.break_duration_minutes or 0)
    return max(0.0, total_minutes / 60)
