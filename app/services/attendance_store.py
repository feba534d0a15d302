"""
Attendance record store: reads and compare-and-set writes on attendance_records.

Writes are keyed on the row's ``version``; a write that finds a different
version (or a duplicate first insert for the same day) raises
``StoreConflict`` so the caller can re-fetch and retry once.
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import StoreConflict
from app.models.attendance import AttendanceRecord
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def get_today_record(db: Session, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
    """The employee's record for ``work_date``, if any."""
    return (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.work_date == work_date,
        )
        .first()
    )


def get_record(db: Session, record_id: int) -> Optional[AttendanceRecord]:
    return db.query(AttendanceRecord).filter(AttendanceRecord.id == record_id).first()


def list_records(
    db: Session,
    from_date: date,
    to_date: date,
    employee_id: Optional[int] = None,
) -> List[AttendanceRecord]:
    query = db.query(AttendanceRecord).filter(
        AttendanceRecord.work_date >= from_date,
        AttendanceRecord.work_date <= to_date,
    )
    if employee_id is not None:
        query = query.filter(AttendanceRecord.employee_id == employee_id)
    return list(query.order_by(AttendanceRecord.work_date.desc(), AttendanceRecord.employee_id).all())


def insert_record(db: Session, employee_id: int, work_date: date, fields: Dict[str, Any]) -> AttendanceRecord:
    """
    Create the day's record with its first checkpoint.

    Raises:
        StoreConflict: a record for (employee, work_date) already exists
    """
    record = AttendanceRecord(employee_id=employee_id, work_date=work_date, version=1, **fields)
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Concurrent first check-in: employee_id=%s work_date=%s", employee_id, work_date)
        raise StoreConflict()
    db.refresh(record)
    return record


def update_record(
    db: Session,
    record: AttendanceRecord,
    fields: Dict[str, Any],
    expected_version: int,
) -> AttendanceRecord:
    """
    Apply ``fields`` only if the stored row still has ``expected_version``.

    Raises:
        StoreConflict: the row changed since it was read
    """
    values = dict(fields)
    values["version"] = expected_version + 1
    values["updated_at"] = now_utc()
    updated = (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.id == record.id,
            AttendanceRecord.version == expected_version,
        )
        .update(values, synchronize_session=False)
    )
    if updated == 0:
        db.rollback()
        logger.warning("Stale write on attendance record id=%s (expected version %s)", record.id, expected_version)
        raise StoreConflict()
    db.commit()
    db.refresh(record)
    return record


def delete_record(db: Session, record: AttendanceRecord, expected_version: int) -> None:
    deleted = (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.id == record.id,
            AttendanceRecord.version == expected_version,
        )
        .delete(synchronize_session=False)
    )
    if deleted == 0:
        db.rollback()
        raise StoreConflict()
    db.commit()
