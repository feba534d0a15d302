"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from app.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    actor_id = Column(Integer, nullable=True)  # operator id when known; kiosks act anonymously
    action = Column(String, nullable=False)  # e.g. "ATTENDANCE_RESET", "GATE_PASS_VERIFY"
    entity_type = Column(String, nullable=False)  # e.g. "attendance_records", "gate_passes"
    entity_id = Column(Integer, nullable=True)
    meta_json = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
