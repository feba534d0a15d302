"""
Attendance rules: which checkpoint a scan represents and whether it may be recorded.

Everything here is pure. Functions take any object exposing the four
checkpoint attributes (``first_check_in`` ... ``second_check_out``), so they
work on ORM rows and on plain test doubles alike, and raise the typed errors
from ``app.core.exceptions``.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from app.core.exceptions import (
    DuplicateTimestamp,
    MaxActionsReached,
    MinimumDurationNotMet,
    SequenceViolation,
)
from app.models.attendance import AttendanceAction, RecordStatus, CHECKPOINT_ORDER
from app.utils.datetime_utils import ensure_utc, whole_minutes_between

_STATUS_BY_COUNT = {
    0: RecordStatus.PENDING,
    1: RecordStatus.FIRST_SESSION,
    2: RecordStatus.ON_BREAK,
    3: RecordStatus.SECOND_SESSION,
    4: RecordStatus.COMPLETED,
}

# action -> (checkpoint it must follow, which floor applies)
_PREDECESSOR = {
    AttendanceAction.FIRST_CHECK_OUT: (AttendanceAction.FIRST_CHECK_IN, "session"),
    AttendanceAction.SECOND_CHECK_IN: (AttendanceAction.FIRST_CHECK_OUT, "break"),
    AttendanceAction.SECOND_CHECK_OUT: (AttendanceAction.SECOND_CHECK_IN, "session"),
}

_SEQUENCE_MESSAGES = {
    AttendanceAction.FIRST_CHECK_OUT: "Check-out time must be after check-in time",
    AttendanceAction.SECOND_CHECK_IN: "Second check-in time must be after first check-out time",
    AttendanceAction.SECOND_CHECK_OUT: "Second check-out time must be after second check-in time",
}

_DURATION_MESSAGES = {
    AttendanceAction.FIRST_CHECK_OUT: "Minimum first session duration is {minutes} minutes",
    AttendanceAction.SECOND_CHECK_IN: "Minimum break duration is {minutes} minutes",
    AttendanceAction.SECOND_CHECK_OUT: "Minimum second session duration is {minutes} minutes",
}


@dataclass(frozen=True)
class CheckpointUpdate:
    """Column values to write for one accepted checkpoint."""

    action: AttendanceAction
    timestamp: datetime
    fields: Dict[str, Any] = field(default_factory=dict)


def checkpoint_times(record: Any) -> Dict[AttendanceAction, Optional[datetime]]:
    """Checkpoint -> timestamp (UTC) for a record; every value is None when record is None."""
    if record is None:
        return {action: None for action in CHECKPOINT_ORDER}
    return {action: ensure_utc(getattr(record, action.value)) for action in CHECKPOINT_ORDER}


def recorded_timestamps(record: Any) -> List[datetime]:
    return [ts for ts in checkpoint_times(record).values() if ts is not None]


def derive_status(times: Dict[AttendanceAction, Optional[datetime]]) -> RecordStatus:
    """Status from the contiguous prefix of populated checkpoints."""
    count = 0
    for action in CHECKPOINT_ORDER:
        if times.get(action) is None:
            break
        count += 1
    return _STATUS_BY_COUNT[count]


def checkpoints_strictly_increasing(record: Any) -> bool:
    """True when the populated checkpoints are in order with no gaps."""
    previous = None
    seen_gap = False
    for ts in checkpoint_times(record).values():
        if ts is None:
            seen_gap = True
            continue
        if seen_gap:
            return False
        if previous is not None and ts <= previous:
            return False
        previous = ts
    return True


def resolve_next_action(record: Any) -> AttendanceAction:
    """
    Return the single legal next checkpoint for today's record.

    Raises:
        MaxActionsReached: all four checkpoints are already recorded
    """
    times = checkpoint_times(record)
    if times[AttendanceAction.FIRST_CHECK_IN] is None:
        return AttendanceAction.FIRST_CHECK_IN
    if times[AttendanceAction.FIRST_CHECK_OUT] is None:
        return AttendanceAction.FIRST_CHECK_OUT
    if times[AttendanceAction.SECOND_CHECK_IN] is None:
        return AttendanceAction.SECOND_CHECK_IN
    if times[AttendanceAction.SECOND_CHECK_OUT] is None:
        return AttendanceAction.SECOND_CHECK_OUT
    raise MaxActionsReached()


def _same_minute(a: datetime, b: datetime) -> bool:
    return a.replace(second=0, microsecond=0) == b.replace(second=0, microsecond=0)


def check_duplicate_timestamp(
    candidate: datetime,
    existing: List[datetime],
    spacing_minutes: int = 1,
) -> None:
    """
    Reject a candidate that collides with an already recorded checkpoint.

    A collision is the same calendar minute, or less than ``spacing_minutes``
    apart in either direction.

    Raises:
        DuplicateTimestamp: carrying the colliding timestamp
    """
    candidate = ensure_utc(candidate)
    window = timedelta(minutes=spacing_minutes)
    for ts in existing:
        ts = ensure_utc(ts)
        if _same_minute(candidate, ts) or abs(candidate - ts) < window:
            raise DuplicateTimestamp(ts)


def validate_checkpoint(
    action: AttendanceAction,
    record: Any,
    candidate: datetime,
    *,
    min_session_minutes: int = 30,
    min_break_minutes: int = 15,
) -> CheckpointUpdate:
    """
    Vet the elapsed time for ``action`` and compute the fields it writes.

    - first_check_out / second_check_out: at least ``min_session_minutes``
      after the matching check-in.
    - second_check_in: at least ``min_break_minutes`` after the first
      check-out; the gap becomes ``break_duration_minutes``.
    - second_check_out also fills ``total_worked_minutes``.

    Raises:
        SequenceViolation: candidate is not after the checkpoint it follows
        MinimumDurationNotMet: the elapsed-time floor is not reached
    """
    candidate = ensure_utc(candidate)
    times = checkpoint_times(record)
    fields: Dict[str, Any] = {action.value: candidate}

    if action in _PREDECESSOR:
        predecessor, floor_kind = _PREDECESSOR[action]
        previous = times[predecessor]
        if previous is None or candidate <= previous:
            raise SequenceViolation(_SEQUENCE_MESSAGES[action])

        required = min_break_minutes if floor_kind == "break" else min_session_minutes
        elapsed = whole_minutes_between(previous, candidate)
        if elapsed < required:
            raise MinimumDurationNotMet(
                required_minutes=required,
                elapsed_minutes=elapsed,
                available_at=previous + timedelta(minutes=required),
                message=_DURATION_MESSAGES[action].format(minutes=required),
            )

        if action == AttendanceAction.SECOND_CHECK_IN:
            fields["break_duration_minutes"] = elapsed
        elif action == AttendanceAction.SECOND_CHECK_OUT:
            first_session = whole_minutes_between(
                times[AttendanceAction.FIRST_CHECK_IN], times[AttendanceAction.FIRST_CHECK_OUT]
            )
            fields["total_worked_minutes"] = first_session + elapsed

    times[action] = candidate
    fields["status"] = derive_status(times)
    return CheckpointUpdate(action=action, timestamp=candidate, fields=fields)
