"""
Attendance service: turns a badge scan into the next checkpoint of the day.

Order of checks for a scan: resolve the next action, reject duplicates,
honour the cooldown, vet the elapsed time, commit with compare-and-set,
then start the cooldown that follows a check-in. All timestamps are server
UTC; the work date is the scan's date in settings.TZ.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import CooldownActive, MaxActionsReached, NotFound
from app.models.attendance import AttendanceAction, AttendanceRecord, CHECKPOINT_ORDER
from app.models.employee import Employee
from app.models.roster import Roster
from app.services import attendance_store as store
from app.services.attendance_rules import (
    check_duplicate_timestamp,
    checkpoint_times,
    derive_status,
    recorded_timestamps,
    resolve_next_action,
    validate_checkpoint,
)
from app.services.audit_service import log_audit
from app.services.cooldown import CooldownManager, CooldownState
from app.services.employee_service import get_active_employee, list_employees
from app.services.lateness import (
    EarlyDeparture,
    LateDuration,
    LateDurationInfo,
    calculate_early_departure,
    calculate_late_duration,
    get_late_duration_info,
)
from app.services.roster_service import get_roster
from app.utils.datetime_utils import ensure_utc, now_utc, work_date_for

logger = logging.getLogger(__name__)

_ACTION_MESSAGES = {
    AttendanceAction.FIRST_CHECK_IN: "First check-in recorded",
    AttendanceAction.FIRST_CHECK_OUT: "First check-out recorded",
    AttendanceAction.SECOND_CHECK_IN: "Second check-in recorded",
    AttendanceAction.SECOND_CHECK_OUT: "Second check-out recorded",
}


class ResetType(str, enum.Enum):
    FIRST_CHECK_IN = "first_check_in"
    FIRST_CHECK_OUT = "first_check_out"
    SECOND_CHECK_IN = "second_check_in"
    SECOND_CHECK_OUT = "second_check_out"
    COMPLETE = "complete"


@dataclass
class ScanResult:
    action: AttendanceAction
    record: AttendanceRecord
    message: str
    cooldown: Optional[CooldownState] = None
    lateness: Optional[LateDuration] = None


@dataclass
class TodayStatus:
    employee_id: int
    work_date: date
    record: Optional[AttendanceRecord]
    next_action: Optional[AttendanceAction]  # None once all checkpoints are recorded
    cooldown: Optional[CooldownState]
    lateness: Optional[LateDuration]


@dataclass
class RecordLateness:
    record: AttendanceRecord
    stored_minutes_late: int
    lateness: Optional[LateDuration]
    info: Optional[LateDurationInfo]
    early_departure: Optional[EarlyDeparture]


def _lateness_for(record: Optional[AttendanceRecord], roster: Optional[Roster]) -> Optional[LateDuration]:
    if record is None or roster is None or record.first_check_in is None:
        return None
    return calculate_late_duration(ensure_utc(record.first_check_in), roster)


def record_scan(
    db: Session,
    employee_id: int,
    cooldown: CooldownManager,
    now: Optional[datetime] = None,
) -> ScanResult:
    """
    Record the next checkpoint for an employee scan.

    Raises:
        NotFound: unknown or inactive employee
        MaxActionsReached, DuplicateTimestamp, CooldownActive,
        SequenceViolation, MinimumDurationNotMet: the scan is not legal now
        StoreConflict: the record changed concurrently (re-fetch and retry once)
    """
    now = ensure_utc(now or now_utc())
    get_active_employee(db, employee_id)
    work_date = work_date_for(now)

    record = store.get_today_record(db, employee_id, work_date)
    action = resolve_next_action(record)

    check_duplicate_timestamp(now, recorded_timestamps(record), settings.MIN_ACTION_SPACING_MINUTES)

    if not cooldown.can_perform_action(employee_id, action):
        state = cooldown.current(employee_id)
        remaining = state.remaining_seconds if state else 0
        raise CooldownActive(
            remaining_seconds=remaining,
            message=f"Please wait {cooldown.format_remaining(employee_id) or '0:00'} before checking out",
        )

    update = validate_checkpoint(
        action,
        record,
        now,
        min_session_minutes=settings.MIN_SESSION_MINUTES,
        min_break_minutes=settings.MIN_BREAK_MINUTES,
    )

    roster = get_roster(db, employee_id)
    fields = dict(update.fields)
    if action == AttendanceAction.FIRST_CHECK_IN:
        # Write-time snapshot; read-time computation from the current roster is authoritative
        fields["minutes_late"] = calculate_late_duration(now, roster).late_minutes if roster else 0

    if record is None:
        record = store.insert_record(db, employee_id, work_date, fields)
    else:
        record = store.update_record(db, record, fields, record.version)

    cooldown_state = cooldown.start_for_action(employee_id, action)
    logger.info(
        "Scan recorded: employee_id=%s work_date=%s action=%s record_id=%s",
        employee_id, work_date, action.value, record.id,
    )
    return ScanResult(
        action=action,
        record=record,
        message=_ACTION_MESSAGES[action],
        cooldown=cooldown_state,
        lateness=_lateness_for(record, roster),
    )


def get_today_status(
    db: Session,
    employee_id: int,
    cooldown: CooldownManager,
    now: Optional[datetime] = None,
) -> TodayStatus:
    """Today's record, the next legal action and any running cooldown."""
    now = ensure_utc(now or now_utc())
    get_active_employee(db, employee_id)
    work_date = work_date_for(now)
    record = store.get_today_record(db, employee_id, work_date)
    try:
        next_action: Optional[AttendanceAction] = resolve_next_action(record)
    except MaxActionsReached:
        next_action = None
    return TodayStatus(
        employee_id=employee_id,
        work_date=work_date,
        record=record,
        next_action=next_action,
        cooldown=cooldown.current(employee_id),
        lateness=_lateness_for(record, get_roster(db, employee_id)),
    )


def list_records(
    db: Session,
    from_date: date,
    to_date: date,
    employee_id: Optional[int] = None,
) -> List[AttendanceRecord]:
    if from_date > to_date:
        raise ValueError("from must be less than or equal to to")
    return store.list_records(db, from_date, to_date, employee_id)


def get_record_lateness(db: Session, record_id: int) -> RecordLateness:
    """Lateness of a stored record against the employee's current roster."""
    record = store.get_record(db, record_id)
    if record is None:
        raise NotFound("Attendance record not found")
    roster = get_roster(db, record.employee_id)
    lateness = _lateness_for(record, roster)
    info = get_late_duration_info(ensure_utc(record.first_check_in), roster) if lateness else None

    early = None
    last_check_out = record.second_check_out or record.first_check_out
    if roster is not None and last_check_out is not None:
        early = calculate_early_departure(ensure_utc(last_check_out), roster)

    return RecordLateness(
        record=record,
        stored_minutes_late=record.minutes_late or 0,
        lateness=lateness,
        info=info,
        early_departure=early,
    )


def recompute_lateness(
    db: Session,
    from_date: date,
    to_date: date,
    employee_id: Optional[int] = None,
) -> int:
    """
    Re-derive and persist ``minutes_late`` from the current rosters.

    Returns:
        Number of records whose stored value changed
    """
    changed = 0
    for record in list_records(db, from_date, to_date, employee_id):
        lateness = _lateness_for(record, get_roster(db, record.employee_id))
        if lateness is None or lateness.late_minutes == (record.minutes_late or 0):
            continue
        store.update_record(db, record, {"minutes_late": lateness.late_minutes}, record.version)
        changed += 1
    if changed:
        log_audit(
            db,
            action="ATTENDANCE_LATENESS_RECOMPUTE",
            entity_type="attendance_records",
            meta={"from": from_date, "to": to_date, "employee_id": employee_id, "changed": changed},
        )
    logger.info("Lateness recomputed for %s..%s: %s record(s) changed", from_date, to_date, changed)
    return changed


def reset_checkpoint(
    db: Session,
    record_id: int,
    reset_type: ResetType,
    cooldown: CooldownManager,
    actor_id: Optional[int] = None,
) -> Optional[AttendanceRecord]:
    """
    Administrative reset: clear a checkpoint and everything downstream of it.

    ``complete`` deletes the record. Any running cooldown for the employee is
    cancelled. Returns the updated record, or None when it was deleted.
    """
    record = store.get_record(db, record_id)
    if record is None:
        raise NotFound("Attendance record not found")

    employee_id = record.employee_id
    before = {action.value: ts for action, ts in checkpoint_times(record).items()}

    if reset_type == ResetType.COMPLETE:
        store.delete_record(db, record, record.version)
        result = None
    else:
        start = CHECKPOINT_ORDER.index(AttendanceAction(reset_type.value))
        times = checkpoint_times(record)
        fields = {"total_worked_minutes": None}
        for action in CHECKPOINT_ORDER[start:]:
            fields[action.value] = None
            times[action] = None
        if start <= CHECKPOINT_ORDER.index(AttendanceAction.SECOND_CHECK_IN):
            fields["break_duration_minutes"] = None
        if start == 0:
            fields["minutes_late"] = 0
        fields["status"] = derive_status(times)
        result = store.update_record(db, record, fields, record.version)

    cooldown.clear(employee_id)
    log_audit(
        db,
        action="ATTENDANCE_RESET",
        entity_type="attendance_records",
        entity_id=record_id,
        meta={"reset_type": reset_type, "employee_id": employee_id, "before": before},
        actor_id=actor_id,
    )
    logger.info("Attendance record id=%s reset (%s)", record_id, reset_type.value)
    return result


@dataclass
class LateArrival:
    employee_id: int
    name: str
    check_in: datetime
    late_minutes: int


@dataclass
class DailySummary:
    work_date: date
    total_attendance: int
    late_count: int
    average_late_minutes: int
    checked_out_count: int
    average_hours_worked: Optional[float]  # None until someone has finished the day
    late_arrivals: List[LateArrival]
    absent_employees: List[Employee]


def get_daily_summary(db: Session, work_date: date) -> DailySummary:
    """
    Figures for one work date.

    Attendance counts records with a first check-in. Lateness is measured
    against each employee's current roster; an employee without a roster is
    never late. Hours worked average over records with a second check-out.
    Absent employees are active employees with no check-in that day.
    """
    records = [r for r in store.list_records(db, work_date, work_date) if r.first_check_in is not None]
    late_arrivals: List[LateArrival] = []
    for record in records:
        lateness = _lateness_for(record, record.employee.roster)
        if lateness is not None and lateness.is_late:
            late_arrivals.append(LateArrival(
                employee_id=record.employee_id,
                name=record.employee.name,
                check_in=ensure_utc(record.first_check_in),
                late_minutes=lateness.late_minutes,
            ))

    worked = [r.total_worked_minutes for r in records if r.total_worked_minutes is not None]
    present_ids = {r.employee_id for r in records}
    absent = [e for e in list_employees(db, active=True) if e.id not in present_ids]

    late_total = sum(a.late_minutes for a in late_arrivals)
    return DailySummary(
        work_date=work_date,
        total_attendance=len(records),
        late_count=len(late_arrivals),
        average_late_minutes=round(late_total / len(late_arrivals)) if late_arrivals else 0,
        checked_out_count=sum(1 for r in records if r.second_check_out is not None),
        average_hours_worked=round(sum(worked) / len(worked) / 60, 1) if worked else None,
        late_arrivals=late_arrivals,
        absent_employees=absent,
    )
