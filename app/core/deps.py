"""
Dependencies for FastAPI endpoints
"""
from datetime import datetime
from typing import Generator

from fastapi import Request

from app.db.session import SessionLocal
from app.services.cooldown import CooldownManager
from app.utils.datetime_utils import now_utc


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> datetime:
    """Request time; overridden in tests to pin the clock."""
    return now_utc()


def get_cooldown_manager(request: Request) -> CooldownManager:
    """App-scoped cooldown manager created at startup (see app.main)."""
    return request.app.state.cooldown_manager
