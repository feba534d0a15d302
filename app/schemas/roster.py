"""
Roster schemas
"""
from datetime import datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.utils.datetime_utils import iso_local


class RosterUpsert(BaseModel):
    """Schema for assigning an employee's roster"""
    start_time: time = Field(..., description="Expected start, local wall time (HH:MM)")
    end_time: time = Field(..., description="Expected end, local wall time (HH:MM)")
    grace_period_minutes: int = Field(default=0, ge=0, le=240)
    break_duration_minutes: int = Field(default=0, ge=0, le=480)
    early_departure_threshold_minutes: int = Field(default=0, ge=0, le=240)


class RosterOut(BaseModel):
    """Schema for roster output"""
    id: int
    employee_id: int
    start_time: time
    end_time: time
    grace_period_minutes: int
    break_duration_minutes: int
    early_departure_threshold_minutes: int
    expected_working_hours: Optional[float] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("start_time", "end_time", when_used="always")
    def _ser_time(self, t: time) -> str:
        return t.strftime("%H:%M")

    @field_serializer("updated_at", when_used="always")
    def _ser_updated_at(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)
