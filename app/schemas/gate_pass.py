"""
Gate pass schemas
"""
from datetime import datetime
from typing import Optional, List

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from app.models.gate_pass import PassStatus, PassType, PassValidity, UsageType
from app.services.gate_pass_service import VerificationOutcome
from app.utils.datetime_utils import iso_local


class GatePassCreate(BaseModel):
    """Schema for issuing a gate pass"""
    employee_id: int = Field(..., gt=0, description="Employee ID")
    validity: PassValidity = Field(..., description="single, day, week or month")
    type: PassType = Field(default=PassType.BOTH, description="entry, exit or both")
    reason: Optional[str] = Field(None, max_length=500, description="Reason for the pass")
    expected_exit_time: Optional[AwareDatetime] = Field(None, description="Planned exit, with UTC offset")
    expected_return_time: Optional[AwareDatetime] = Field(None, description="Planned return, with UTC offset")
    actor_id: Optional[int] = Field(None, description="Operator issuing the pass")

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def check_expected_times(self) -> "GatePassCreate":
        if (
            self.expected_exit_time is not None
            and self.expected_return_time is not None
            and self.expected_return_time <= self.expected_exit_time
        ):
            raise ValueError("expected_return_time must be after expected_exit_time")
        return self


class GatePassOut(BaseModel):
    """Schema for gate pass output"""
    id: int
    employee_id: int
    pass_code: str
    validity: PassValidity
    type: PassType
    reason: Optional[str] = None
    status: PassStatus
    expires_at: datetime
    used_at: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    return_time: Optional[datetime] = None
    expected_exit_time: Optional[datetime] = None
    expected_return_time: Optional[datetime] = None
    use_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer(
        "expires_at",
        "used_at",
        "exit_time",
        "return_time",
        "expected_exit_time",
        "expected_return_time",
        "created_at",
        when_used="always",
    )
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class GatePassListResponse(BaseModel):
    items: List[GatePassOut]
    total: int


class VerifyRequest(BaseModel):
    """Scanned or typed code; partial codes of at least six characters are accepted"""
    code: str = Field(..., min_length=1, description="Pass code as scanned or typed")


class VerifyResponse(BaseModel):
    verified: bool
    message: str
    outcome: VerificationOutcome
    code: Optional[str] = Field(None, description="Error code when the pass was rejected")
    gate_pass: Optional[GatePassOut] = Field(None, alias="pass")

    model_config = ConfigDict(populate_by_name=True)


class UsageRequest(BaseModel):
    usage_type: UsageType = Field(..., description="exit or return")


class RevokeRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
    actor_id: Optional[int] = None


class ExpireOverdueResponse(BaseModel):
    expired: int
