"""
Attendance schemas. All datetimes are returned in settings.TZ with an explicit offset.
"""
from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, model_validator, field_serializer

from app.models.attendance import AttendanceAction, RecordStatus
from app.services.attendance_service import ResetType
from app.services.cooldown import SessionType
from app.schemas.employee import EmployeeOut
from app.services.lateness import LateSeverity
from app.utils.datetime_utils import iso_local


class ScanRequest(BaseModel):
    """Schema for a badge scan: either the employee id or the raw QR payload"""
    employee_id: Optional[int] = Field(None, gt=0, description="Employee ID")
    qr_data: Optional[str] = Field(None, min_length=1, description="Decoded badge QR text")

    @model_validator(mode="after")
    def check_one_identifier(self):
        if (self.employee_id is None) == (self.qr_data is None):
            raise ValueError("Provide exactly one of employee_id or qr_data")
        return self


class AttendanceRecordOut(BaseModel):
    """Schema for an attendance record"""
    id: int
    employee_id: int
    work_date: date
    first_check_in: Optional[datetime] = None
    first_check_out: Optional[datetime] = None
    second_check_in: Optional[datetime] = None
    second_check_out: Optional[datetime] = None
    status: RecordStatus
    minutes_late: int
    break_duration_minutes: Optional[int] = None
    total_worked_minutes: Optional[int] = None
    version: int

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("first_check_in", "first_check_out", "second_check_in", "second_check_out", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class AttendanceListResponse(BaseModel):
    """Schema for attendance list response"""
    items: List[AttendanceRecordOut]
    total: int


class CooldownOut(BaseModel):
    employee_id: int
    is_active: bool
    session_type: SessionType
    start_time: datetime
    duration_minutes: int
    remaining_seconds: int
    ends_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("start_time", "ends_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class CooldownStatusOut(BaseModel):
    employee_id: int
    in_cooldown: bool
    remaining: Optional[str] = Field(None, description="Remaining time as M:SS")
    cooldown: Optional[CooldownOut] = None


class LateDurationOut(BaseModel):
    is_late: bool
    late_minutes: int
    grace_period_used: int
    actual_check_in: datetime
    roster_start: datetime
    formatted: str

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("actual_check_in", "roster_start", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class LateDurationInfoOut(BaseModel):
    display: str
    severity: LateSeverity
    description: str

    model_config = ConfigDict(from_attributes=True)


class EarlyDepartureOut(BaseModel):
    is_early: bool
    early_minutes: int
    roster_end: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("roster_end", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class ScanResponse(BaseModel):
    """Schema for a successful scan"""
    action: AttendanceAction
    message: str
    record: AttendanceRecordOut
    cooldown: Optional[CooldownOut] = None
    lateness: Optional[LateDurationOut] = None

    model_config = ConfigDict(from_attributes=True)


class TodayStatusOut(BaseModel):
    employee_id: int
    work_date: date
    record: Optional[AttendanceRecordOut] = None
    next_action: Optional[AttendanceAction] = Field(None, description="None when the day is complete")
    cooldown: Optional[CooldownOut] = None
    lateness: Optional[LateDurationOut] = None

    model_config = ConfigDict(from_attributes=True)


class RecordLatenessOut(BaseModel):
    record_id: int
    stored_minutes_late: int = Field(..., description="Value captured at check-in")
    lateness: Optional[LateDurationOut] = Field(None, description="Against the current roster")
    info: Optional[LateDurationInfoOut] = None
    early_departure: Optional[EarlyDepartureOut] = None


class ResetRequest(BaseModel):
    reset_type: ResetType
    actor_id: Optional[int] = Field(None, description="Operator performing the reset")


class ResetResponse(BaseModel):
    record_id: int
    reset_type: ResetType
    deleted: bool
    record: Optional[AttendanceRecordOut] = None


class LatenessRecomputeRequest(BaseModel):
    from_date: date = Field(..., alias="from")
    to_date: date = Field(..., alias="to")
    employee_id: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="after")
    def check_range(self):
        if self.from_date > self.to_date:
            raise ValueError("from must be less than or equal to to")
        return self


class LatenessRecomputeResponse(BaseModel):
    changed: int


class LateArrivalOut(BaseModel):
    employee_id: int
    name: str
    check_in: datetime
    late_minutes: int

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("check_in", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class DailySummaryOut(BaseModel):
    """Schema for the per-date attendance summary"""
    work_date: date
    total_attendance: int
    late_count: int
    average_late_minutes: int
    checked_out_count: int = Field(..., description="Employees who finished the day")
    average_hours_worked: Optional[float] = None
    late_arrivals: List[LateArrivalOut]
    absent_employees: List[EmployeeOut]

    model_config = ConfigDict(from_attributes=True)
