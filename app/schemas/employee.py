"""
Employee schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator, field_serializer, ConfigDict

from app.utils.datetime_utils import iso_local


class EmployeeCreate(BaseModel):
    """Schema for creating an employee"""
    emp_code: str = Field(..., min_length=1, description="Employee code (unique, printed in the badge QR)")
    name: str = Field(..., min_length=1, description="Employee name")
    mobile_number: Optional[str] = Field(None, description="Employee mobile number")
    email: Optional[str] = Field(None, description="Employee email")
    active: bool = Field(default=True, description="Employee active status")

    @field_validator("emp_code", "name", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v


class EmployeeOut(BaseModel):
    """Schema for employee output"""
    id: int
    emp_code: str
    name: str
    mobile_number: Optional[str] = None
    email: Optional[str] = None
    active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    def _ser_created_at(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)
