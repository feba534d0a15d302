"""
Persisted cooldown snapshot. Only the start instant and duration are stored;
the remainder is always recomputed from wall-clock time.
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, String
from app.db.base import Base


class CooldownSnapshot(Base):
    __tablename__ = "cooldown_states"

    employee_id = Column(Integer, ForeignKey("employees.id"), primary_key=True)
    session_type = Column(String, nullable=False)  # first / second
    start_time = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
