"""
Database models
"""
from app.models.employee import Employee
from app.models.roster import Roster
from app.models.audit_log import AuditLog
from app.models.attendance import (
    AttendanceRecord,
    AttendanceAction,
    RecordStatus,
    CHECKPOINT_ORDER,
)
from app.models.cooldown import CooldownSnapshot
from app.models.gate_pass import (
    GatePass,
    PassValidity,
    PassType,
    PassStatus,
    UsageType,
)

__all__ = [
    "Employee",
    "Roster",
    "AuditLog",
    "AttendanceRecord",
    "AttendanceAction",
    "RecordStatus",
    "CHECKPOINT_ORDER",
    "CooldownSnapshot",
    "GatePass",
    "PassValidity",
    "PassType",
    "PassStatus",
    "UsageType",
]
