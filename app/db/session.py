"""
Database session management
"""
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.core.config import settings
from app.db.base import Base


def _connect_args(url: str, timeout_seconds: int) -> Dict[str, Any]:
    """Driver timeouts so a stuck store surfaces as an error instead of a hang."""
    if url.startswith("sqlite"):
        return {"timeout": timeout_seconds, "check_same_thread": False}
    if url.startswith("postgresql"):
        return {
            "connect_timeout": timeout_seconds,
            "options": f"-c statement_timeout={timeout_seconds * 1000}",
        }
    return {}


_engine_kwargs: Dict[str, Any] = {
    "pool_pre_ping": True,
    "connect_args": _connect_args(settings.DATABASE_URL, settings.STORE_TIMEOUT_SECONDS),
    "echo": False,
}
if not settings.DATABASE_URL.startswith("sqlite"):
    _engine_kwargs["pool_timeout"] = settings.STORE_TIMEOUT_SECONDS

engine = create_engine(settings.DATABASE_URL, **_engine_kwargs)

# Create all tables automatically on startup for SQLite
if "sqlite" in settings.DATABASE_URL:
    import app.models  # noqa: F401  (register tables on Base.metadata)
    Base.metadata.create_all(bind=engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
