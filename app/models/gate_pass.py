"""
Gate pass model
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class PassValidity(str, enum.Enum):
    SINGLE = "single"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class PassType(str, enum.Enum):
    ENTRY = "entry"
    EXIT = "exit"
    BOTH = "both"


class PassStatus(str, enum.Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"
    REVOKED = "revoked"


class UsageType(str, enum.Enum):
    EXIT = "exit"
    RETURN = "return"


class GatePass(Base):
    __tablename__ = "gate_passes"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    pass_code = Column(String, nullable=False, unique=True)
    # Lookup keys for the normalized and suffix matching layers
    normalized_code = Column(String, nullable=False, index=True)
    code_suffix = Column(String, nullable=False, index=True)
    validity = Column(SQLEnum(PassValidity), nullable=False)
    type = Column(SQLEnum(PassType), nullable=False, default=PassType.BOTH)
    reason = Column(Text, nullable=True)
    status = Column(SQLEnum(PassStatus), nullable=False, default=PassStatus.ACTIVE, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    exit_time = Column(DateTime(timezone=True), nullable=True)
    return_time = Column(DateTime(timezone=True), nullable=True)
    # Planned trip, entered when the pass is issued
    expected_exit_time = Column(DateTime(timezone=True), nullable=True)
    expected_return_time = Column(DateTime(timezone=True), nullable=True)
    use_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", backref="gate_passes")
