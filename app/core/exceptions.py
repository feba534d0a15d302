"""
Typed errors for attendance and gate-pass decisions.

Each error carries a stable ``code`` and an HTTP status so the API layer can
render a specific message without matching on strings. Extra fields are
exposed through ``extra()`` and end up in the JSON error body.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import status


class AttendanceError(Exception):
    """Base class for every decision the core can refuse."""

    code = "ATTENDANCE_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Attendance action rejected"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def extra(self) -> Dict[str, Any]:
        return {}


class NotFound(AttendanceError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class MaxActionsReached(AttendanceError):
    """All four checkpoints of the day are recorded."""

    code = "MAX_ACTIONS_REACHED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Maximum daily attendance actions reached"


class DuplicateTimestamp(AttendanceError):
    """Candidate collides with an already recorded checkpoint."""

    code = "DUPLICATE_TIMESTAMP"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Cannot record attendance at the same time as a previous action"

    def __init__(self, last_action_time: datetime, message: Optional[str] = None):
        self.last_action_time = last_action_time
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {"last_action_time": self.last_action_time.isoformat()}


class SequenceViolation(AttendanceError):
    """Candidate precedes the checkpoint it must follow (clock skew or tampering)."""

    code = "SEQUENCE_VIOLATION"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Checkpoint time must be after the previous checkpoint"


class MinimumDurationNotMet(AttendanceError):
    code = "MINIMUM_DURATION_NOT_MET"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Too early for this action"

    def __init__(
        self,
        required_minutes: int,
        elapsed_minutes: int,
        available_at: datetime,
        message: Optional[str] = None,
    ):
        self.required_minutes = required_minutes
        self.elapsed_minutes = elapsed_minutes
        self.available_at = available_at
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {
            "required_minutes": self.required_minutes,
            "elapsed_minutes": self.elapsed_minutes,
            "available_at": self.available_at.isoformat(),
        }


class CooldownActive(AttendanceError):
    code = "COOLDOWN_ACTIVE"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Please wait for the cooldown to finish"

    def __init__(self, remaining_seconds: int, message: Optional[str] = None):
        self.remaining_seconds = remaining_seconds
        super().__init__(message)

    def extra(self) -> Dict[str, Any]:
        return {"remaining_seconds": self.remaining_seconds}


class GatePassError(AttendanceError):
    """Terminal outcome of a single verification attempt."""

    code = "GATE_PASS_ERROR"


class PassNotFound(GatePassError):
    code = "PASS_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Invalid gate pass. This pass does not exist."


class PassAlreadyUsed(GatePassError):
    code = "PASS_ALREADY_USED"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Pass already used. This single-use pass has already been scanned."


class PassExpired(GatePassError):
    code = "PASS_EXPIRED"
    status_code = status.HTTP_410_GONE
    default_message = "Expired gate pass. This pass is no longer valid."


class PassRevoked(GatePassError):
    code = "PASS_REVOKED"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Revoked gate pass. This pass has been cancelled."


class InvalidPassUsage(GatePassError):
    code = "INVALID_PASS_USAGE"
    status_code = status.HTTP_409_CONFLICT
    default_message = "This usage cannot be recorded for the pass"


class StoreConflict(AttendanceError):
    """Optimistic-concurrency failure; re-fetch and retry once."""

    code = "STORE_CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "The record was changed concurrently, please retry"


class PassCodeCollision(StoreConflict):
    code = "PASS_CODE_COLLISION"
    default_message = "Generated pass code already exists"


class StoreUnavailable(AttendanceError):
    code = "STORE_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Attendance store is unavailable, please try again"
