"""
Attendance record model: one row per employee per work date, up to four checkpoints.
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class AttendanceAction(str, enum.Enum):
    FIRST_CHECK_IN = "first_check_in"
    FIRST_CHECK_OUT = "first_check_out"
    SECOND_CHECK_IN = "second_check_in"
    SECOND_CHECK_OUT = "second_check_out"


class RecordStatus(str, enum.Enum):
    PENDING = "PENDING"  # every checkpoint cleared by an admin reset
    FIRST_SESSION = "FIRST_SESSION"
    ON_BREAK = "ON_BREAK"
    SECOND_SESSION = "SECOND_SESSION"
    COMPLETED = "COMPLETED"


# Checkpoint order; the column name of each action is its enum value
CHECKPOINT_ORDER = (
    AttendanceAction.FIRST_CHECK_IN,
    AttendanceAction.FIRST_CHECK_OUT,
    AttendanceAction.SECOND_CHECK_IN,
    AttendanceAction.SECOND_CHECK_OUT,
)


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    work_date = Column(Date, nullable=False, index=True)  # date in settings.TZ
    first_check_in = Column(DateTime(timezone=True), nullable=True)
    first_check_out = Column(DateTime(timezone=True), nullable=True)
    second_check_in = Column(DateTime(timezone=True), nullable=True)
    second_check_out = Column(DateTime(timezone=True), nullable=True)
    status = Column(SQLEnum(RecordStatus), nullable=False, default=RecordStatus.FIRST_SESSION)
    minutes_late = Column(Integer, nullable=False, default=0)  # snapshot at first check-in
    break_duration_minutes = Column(Integer, nullable=True)
    total_worked_minutes = Column(Integer, nullable=True)
    version = Column(Integer, nullable=False, default=1)  # compare-and-set token
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="uq_attendance_records_employee_work_date"),
    )

    employee = relationship("Employee", backref="attendance_records")
