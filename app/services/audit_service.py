"""
Audit trail for administrative corrections and gate pass transitions.

Scans are not audited; the attendance record itself is their history.
"""
import logging
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog
from app.utils.datetime_utils import now_utc
from app.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)


def log_audit(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None,
    actor_id: Optional[int] = None,
    *,
    commit: bool = True,
) -> AuditLog:
    """
    Add an audit entry, e.g. ``ATTENDANCE_RESET`` on ``attendance_records``.

    With ``commit=False`` the entry joins the caller's transaction, so a pass
    insert and its ``GATE_PASS_CREATE`` entry land (or roll back) together.
    """
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=sanitize_for_json(meta),
        # set here rather than by server_default; SQLite stores it naive otherwise
        created_at=now_utc(),
    )
    db.add(entry)
    if commit:
        db.commit()
        db.refresh(entry)
    logger.debug("Audit %s on %s id=%s by actor=%s", action, entity_type, entity_id, actor_id)
    return entry
