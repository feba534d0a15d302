"""
Logging configuration for the QR Attendance Backend
"""
import logging
import sys
from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty libraries, kept at WARNING unless LOG_LEVEL is DEBUG
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "alembic.runtime.migration")


def setup_logging() -> None:
    """
    Configure stdout logging at settings.LOG_LEVEL.

    Scan decisions, cooldown start/expiry and gate pass transitions are
    logged by their services under ``app.services.*``.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    third_party_level = logging.DEBUG if log_level == logging.DEBUG else logging.WARNING
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logging.getLogger(__name__).info(
        "Logging configured: level=%s, env=%s, tz=%s", settings.LOG_LEVEL, settings.APP_ENV, settings.TZ
    )
