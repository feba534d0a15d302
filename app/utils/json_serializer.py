"""
Convert audit metadata to values a JSON column accepts.

Checkpoint timestamps are written as UTC ISO strings so that values read
back from SQLite (naive) and PostgreSQL (aware) land in the log the same way.
"""
import dataclasses
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from pydantic import BaseModel

from app.utils.datetime_utils import ensure_utc


def sanitize_for_json(obj: Any) -> Any:
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return ensure_utc(obj).isoformat()
    if isinstance(obj, time):
        return obj.strftime("%H:%M")
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, dict):
        # Enum keys (e.g. AttendanceAction) become their values
        return {str(sanitize_for_json(k)): sanitize_for_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [sanitize_for_json(item) for item in obj]
    if isinstance(obj, BaseModel):
        return sanitize_for_json(obj.model_dump())
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return sanitize_for_json(dataclasses.asdict(obj))
    return str(obj)
