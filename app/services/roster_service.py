"""
Roster source: read by lateness calculations, written by administrators.
"""
from datetime import time
from typing import Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound
from app.models.employee import Employee
from app.models.roster import Roster


def get_roster(db: Session, employee_id: int) -> Optional[Roster]:
    """Roster for the employee, or None when none is assigned."""
    return db.query(Roster).filter(Roster.employee_id == employee_id).first()


def upsert_roster(
    db: Session,
    employee_id: int,
    *,
    start_time: time,
    end_time: time,
    grace_period_minutes: int = 0,
    break_duration_minutes: int = 0,
    early_departure_threshold_minutes: int = 0,
) -> Roster:
    """
    Assign or replace an employee's roster.

    Stored ``minutes_late`` values are not rewritten here; use
    ``attendance_service.recompute_lateness`` to re-derive them.
    """
    if db.query(Employee.id).filter(Employee.id == employee_id).first() is None:
        raise NotFound("Employee not found")

    roster = get_roster(db, employee_id)
    if roster is None:
        roster = Roster(employee_id=employee_id)
        db.add(roster)
    roster.start_time = start_time
    roster.end_time = end_time
    roster.grace_period_minutes = grace_period_minutes
    roster.break_duration_minutes = break_duration_minutes
    roster.early_departure_threshold_minutes = early_departure_threshold_minutes
    db.commit()
    db.refresh(roster)
    return roster
