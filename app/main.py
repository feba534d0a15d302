"""
QR Attendance Backend - Main Application Entry Point
"""
import asyncio
import logging
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from app.api.router import api_router
from app.core.config import settings
from app.core.constants import DEFAULT_VERSION
from app.core.errors import (
    attendance_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    store_exception_handler,
    generic_exception_handler,
)
from app.core.exceptions import AttendanceError
from app.core.logging import setup_logging
from app.db.session import SessionLocal
from app.services.cooldown import CooldownManager, SqlCooldownStore

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return url
    if parsed.password:
        netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
        if parsed.port:
            netloc += f":{parsed.port}"
        return urlunparse(parsed._replace(netloc=netloc))
    return url


# Create FastAPI app
app = FastAPI(
    title="QR Attendance Backend",
    description="QR badge attendance with four daily checkpoints, and gate passes",
    version=settings.VERSION or DEFAULT_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(AttendanceError, attendance_exception_handler)
app.add_exception_handler(OperationalError, store_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL at startup so it can be verified against Alembic."""
    settings.validate_production()
    logger.info("DATABASE_URL (app): %s", _mask_database_url(settings.DATABASE_URL))


@app.on_event("startup")
async def start_cooldown_manager() -> None:
    """Create the app-scoped cooldown manager, restore persisted cooldowns and start the ticker."""
    manager = CooldownManager(
        SqlCooldownStore(SessionLocal),
        first_session_minutes=settings.FIRST_SESSION_COOLDOWN_MINUTES,
        second_session_minutes=settings.SECOND_SESSION_COOLDOWN_MINUTES,
    )
    try:
        manager.restore()
    except OperationalError as e:
        # Tables not created yet; cooldowns start empty
        logger.warning("Could not restore cooldowns: %s", e)
    app.state.cooldown_manager = manager
    app.state.cooldown_task = asyncio.create_task(manager.run(settings.COOLDOWN_TICK_SECONDS))


@app.on_event("shutdown")
async def stop_cooldown_manager() -> None:
    task = getattr(app.state, "cooldown_task", None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    manager = getattr(app.state, "cooldown_manager", None)
    if manager is not None:
        manager.close()
