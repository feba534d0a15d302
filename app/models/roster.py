"""
Roster model: an employee's expected shift (read-only input to lateness)
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, Time
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base import Base


class Roster(Base):
    __tablename__ = "rosters"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, unique=True, index=True)
    start_time = Column(Time, nullable=False)  # time of day in settings.TZ
    end_time = Column(Time, nullable=False)
    grace_period_minutes = Column(Integer, nullable=False, default=0)
    break_duration_minutes = Column(Integer, nullable=False, default=0)
    early_departure_threshold_minutes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", back_populates="roster")
