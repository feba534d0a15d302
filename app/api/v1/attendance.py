"""
Attendance endpoints: badge scans, today's status, records and administrative corrections.
"""
import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.deps import get_clock, get_cooldown_manager, get_db
from app.core.exceptions import StoreConflict
from app.schemas.attendance import (
    AttendanceListResponse,
    AttendanceRecordOut,
    CooldownOut,
    CooldownStatusOut,
    DailySummaryOut,
    LatenessRecomputeRequest,
    LatenessRecomputeResponse,
    RecordLatenessOut,
    ResetRequest,
    ResetResponse,
    ScanRequest,
    ScanResponse,
    TodayStatusOut,
)
from app.services.attendance_service import (
    get_daily_summary,
    get_record_lateness,
    get_today_status,
    list_records,
    recompute_lateness,
    record_scan,
    reset_checkpoint,
)
from app.services.cooldown import CooldownManager
from app.services.employee_service import resolve_employee_from_qr
from app.utils.datetime_utils import work_date_for

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/scan", response_model=ScanResponse, status_code=201)
async def scan_endpoint(
    body: ScanRequest,
    db: Session = Depends(get_db),
    cooldown: CooldownManager = Depends(get_cooldown_manager),
    now: datetime = Depends(get_clock),
):
    """
    Record the next checkpoint for a badge scan.

    The action (first/second check-in/out) is inferred from today's record.
    A concurrent write to the same record is retried once against fresh data.
    """
    employee_id = body.employee_id
    if employee_id is None:
        employee_id = resolve_employee_from_qr(db, body.qr_data).id

    try:
        result = record_scan(db, employee_id, cooldown, now)
    except StoreConflict:
        logger.info("Retrying scan for employee_id=%s after a concurrent write", employee_id)
        db.expire_all()
        result = record_scan(db, employee_id, cooldown, now)
    return ScanResponse.model_validate(result)


@router.get("/today/{employee_id}", response_model=TodayStatusOut)
async def today_status_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    cooldown: CooldownManager = Depends(get_cooldown_manager),
    now: datetime = Depends(get_clock),
):
    """Today's record, the next action a scan would record and any running cooldown"""
    return TodayStatusOut.model_validate(get_today_status(db, employee_id, cooldown, now))


@router.get("/summary", response_model=DailySummaryOut)
async def daily_summary_endpoint(
    work_date: Optional[date] = Query(None, alias="date", description="Work date (default today)"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """Attendance, lateness, hours worked and absentees for one work date"""
    summary = get_daily_summary(db, work_date or work_date_for(now))
    return DailySummaryOut.model_validate(summary)


@router.get("/records", response_model=AttendanceListResponse)
async def list_records_endpoint(
    from_date: Optional[date] = Query(None, alias="from", description="First work date (default today)"),
    to_date: Optional[date] = Query(None, alias="to", description="Last work date (default from)"),
    employee_id: Optional[int] = Query(None, description="Filter by employee"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """List attendance records for a work-date range, newest first"""
    from_date = from_date or work_date_for(now)
    to_date = to_date or from_date
    if from_date > to_date:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="from must be on or before to")
    items = list_records(db, from_date, to_date, employee_id)
    return AttendanceListResponse(
        items=[AttendanceRecordOut.model_validate(r) for r in items],
        total=len(items),
    )


@router.get("/records/{record_id}/lateness", response_model=RecordLatenessOut)
async def record_lateness_endpoint(
    record_id: int,
    db: Session = Depends(get_db),
):
    """
    Lateness of a record against the employee's current roster.

    ``stored_minutes_late`` is the value captured at check-in; ``lateness`` is
    recomputed now and wins when the two differ.
    """
    result = get_record_lateness(db, record_id)
    return RecordLatenessOut.model_validate(
        {
            "record_id": result.record.id,
            "stored_minutes_late": result.stored_minutes_late,
            "lateness": result.lateness,
            "info": result.info,
            "early_departure": result.early_departure,
        },
        from_attributes=True,
    )


@router.post("/records/{record_id}/reset", response_model=ResetResponse)
async def reset_record_endpoint(
    record_id: int,
    body: ResetRequest,
    db: Session = Depends(get_db),
    cooldown: CooldownManager = Depends(get_cooldown_manager),
):
    """Clear a checkpoint and everything after it; ``complete`` deletes the record"""
    record = reset_checkpoint(db, record_id, body.reset_type, cooldown, actor_id=body.actor_id)
    return ResetResponse(
        record_id=record_id,
        reset_type=body.reset_type,
        deleted=record is None,
        record=AttendanceRecordOut.model_validate(record) if record is not None else None,
    )


@router.post("/lateness/recompute", response_model=LatenessRecomputeResponse)
async def recompute_lateness_endpoint(
    body: LatenessRecomputeRequest,
    db: Session = Depends(get_db),
):
    """Re-derive stored minutes_late from current rosters for a date range"""
    changed = recompute_lateness(db, body.from_date, body.to_date, body.employee_id)
    return LatenessRecomputeResponse(changed=changed)


@router.get("/cooldown/{employee_id}", response_model=CooldownStatusOut)
async def cooldown_status_endpoint(
    employee_id: int,
    cooldown: CooldownManager = Depends(get_cooldown_manager),
):
    state = cooldown.current(employee_id)
    return CooldownStatusOut(
        employee_id=employee_id,
        in_cooldown=state is not None,
        remaining=cooldown.format_remaining(employee_id) if state else None,
        cooldown=CooldownOut.model_validate(state) if state else None,
    )
