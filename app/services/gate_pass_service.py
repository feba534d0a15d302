"""
Gate pass service: issue passes, verify scanned or typed codes, record exits and returns.

Status only ever leaves ``active``. Every transition is a conditional
``UPDATE ... WHERE id = ? AND status = ?`` so two gates verifying the same
single-use pass cannot both consume it.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.constants import PASS_SUFFIX_LENGTH
from app.core.exceptions import (
    GatePassError,
    InvalidPassUsage,
    PassAlreadyUsed,
    PassCodeCollision,
    PassExpired,
    PassNotFound,
    PassRevoked,
)
from app.models.gate_pass import GatePass, PassStatus, PassType, PassValidity, UsageType
from app.services.audit_service import log_audit
from app.services.employee_service import get_active_employee
from app.services.gate_pass_codes import code_suffix, compute_expiry, generate_code, normalize_code
from app.utils.datetime_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)

VALID_MESSAGE = "Valid gate pass. Employee may proceed."


class VerificationOutcome(str, enum.Enum):
    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"
    REVOKED = "revoked"


_OUTCOME_BY_ERROR = {
    PassNotFound: VerificationOutcome.NOT_FOUND,
    PassAlreadyUsed: VerificationOutcome.ALREADY_USED,
    PassExpired: VerificationOutcome.EXPIRED,
    PassRevoked: VerificationOutcome.REVOKED,
}


@dataclass
class VerificationResult:
    verified: bool
    message: str
    pass_: Optional[GatePass]
    outcome: VerificationOutcome
    code: Optional[str] = None  # error code when not verified

    @classmethod
    def rejected(cls, error: GatePassError, pass_: Optional[GatePass] = None) -> "VerificationResult":
        return cls(
            verified=False,
            message=error.message,
            pass_=pass_,
            outcome=_OUTCOME_BY_ERROR[type(error)],
            code=error.code,
        )


def _is_overdue(gate_pass: GatePass, now: datetime) -> bool:
    return ensure_utc(gate_pass.expires_at) <= now


def create_gate_pass(
    db: Session,
    employee_id: int,
    validity: PassValidity,
    pass_type: PassType = PassType.BOTH,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
    actor_id: Optional[int] = None,
    expected_exit_time: Optional[datetime] = None,
    expected_return_time: Optional[datetime] = None,
) -> GatePass:
    """
    Issue a pass with a fresh code.

    Raises:
        NotFound: unknown or inactive employee
        ValueError: expected return is not after expected exit
        PassCodeCollision: the generated code already exists (retry with a new one)
    """
    now = ensure_utc(now or now_utc())
    expected_exit_time = ensure_utc(expected_exit_time)
    expected_return_time = ensure_utc(expected_return_time)
    if expected_exit_time and expected_return_time and expected_return_time <= expected_exit_time:
        raise ValueError("expected_return_time must be after expected_exit_time")
    get_active_employee(db, employee_id)

    pass_code = generate_code(now)
    normalized = normalize_code(pass_code)
    gate_pass = GatePass(
        employee_id=employee_id,
        pass_code=pass_code,
        normalized_code=normalized,
        code_suffix=code_suffix(normalized),
        validity=validity,
        type=pass_type,
        reason=reason,
        status=PassStatus.ACTIVE,
        expires_at=compute_expiry(validity, now),
        expected_exit_time=expected_exit_time,
        expected_return_time=expected_return_time,
        use_count=0,
        created_at=now,
    )
    db.add(gate_pass)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.warning("Gate pass code collision on %s", pass_code)
        raise PassCodeCollision()

    log_audit(
        db,
        action="GATE_PASS_CREATE",
        entity_type="gate_passes",
        entity_id=gate_pass.id,
        meta={"employee_id": employee_id, "validity": validity, "type": pass_type},
        actor_id=actor_id,
        commit=False,
    )
    db.commit()
    db.refresh(gate_pass)
    logger.info("Gate pass issued: id=%s employee_id=%s validity=%s", gate_pass.id, employee_id, gate_pass.validity.value)
    return gate_pass


def get_gate_pass(db: Session, pass_id: int, now: Optional[datetime] = None) -> GatePass:
    """Load a pass; an overdue active pass is marked expired on the way out."""
    gate_pass = db.query(GatePass).filter(GatePass.id == pass_id).first()
    if gate_pass is None:
        raise PassNotFound()
    return _apply_lazy_expiry(db, gate_pass, ensure_utc(now or now_utc()))


def list_gate_passes(
    db: Session,
    employee_id: Optional[int] = None,
    status: Optional[PassStatus] = None,
    now: Optional[datetime] = None,
) -> List[GatePass]:
    """Passes newest first; overdue active passes are marked expired before listing."""
    expire_overdue_passes(db, now)
    query = db.query(GatePass)
    if employee_id is not None:
        query = query.filter(GatePass.employee_id == employee_id)
    if status is not None:
        query = query.filter(GatePass.status == status)
    return list(query.order_by(GatePass.created_at.desc(), GatePass.id.desc()).all())


def find_candidates(db: Session, raw: str) -> List[GatePass]:
    """
    Resolve scanned or typed input to pass candidates.

    Layers, in order: exact code (case-insensitive), normalized code, then
    the last six characters of the normalized input. The first layer with a
    single match wins. A layer with several matches falls through; if no
    layer is unique, the widest ambiguous match is returned so the caller
    can tell "ambiguous" from "missing".
    """
    text = (raw or "").strip()
    normalized = normalize_code(text)
    if not normalized:
        return []

    layers = [
        # codes are stored uppercase, so the unique index on pass_code serves this
        db.query(GatePass).filter(GatePass.pass_code == text.upper()),
        db.query(GatePass).filter(GatePass.normalized_code == normalized),
    ]
    if len(normalized) >= PASS_SUFFIX_LENGTH:
        layers.append(db.query(GatePass).filter(GatePass.code_suffix == code_suffix(normalized)))

    ambiguous: List[GatePass] = []
    for query in layers:
        # Two rows are enough to know a layer is not unique
        matches = query.order_by(GatePass.id).limit(2).all()
        if len(matches) == 1:
            return matches
        if len(matches) > 1 and not ambiguous:
            ambiguous = matches
    return ambiguous


def conditional_transition(
    db: Session,
    pass_id: int,
    expected_status: PassStatus,
    new_status: PassStatus,
    fields: Optional[Dict[str, Any]] = None,
    where: Sequence[Any] = (),
) -> bool:
    """
    Set ``status`` (and ``fields``) only while the row still has ``expected_status``.

    ``where`` adds criteria the row must still meet, e.g. the ``exit_time``
    that was read before recording a trip.

    Returns:
        True when this call won the transition
    """
    values = dict(fields or {})
    values["status"] = new_status
    updated = (
        db.query(GatePass)
        .filter(GatePass.id == pass_id, GatePass.status == expected_status, *where)
        .update(values, synchronize_session=False)
    )
    db.commit()
    return updated == 1


def _apply_lazy_expiry(db: Session, gate_pass: GatePass, now: datetime) -> GatePass:
    if gate_pass.status == PassStatus.ACTIVE and _is_overdue(gate_pass, now):
        if conditional_transition(db, gate_pass.id, PassStatus.ACTIVE, PassStatus.EXPIRED):
            logger.info("Gate pass id=%s expired on access", gate_pass.id)
        db.refresh(gate_pass)
    return gate_pass


def _rejection(gate_pass: GatePass) -> Optional[GatePassError]:
    if gate_pass.status == PassStatus.USED and gate_pass.validity == PassValidity.SINGLE:
        return PassAlreadyUsed()
    if gate_pass.status == PassStatus.EXPIRED:
        return PassExpired()
    if gate_pass.status == PassStatus.REVOKED:
        return PassRevoked()
    return None


def verify_gate_pass(db: Session, raw: str, now: Optional[datetime] = None) -> VerificationResult:
    """
    Verify a pass at the gate. Never raises for a rejected pass.

    A valid single-use pass is consumed here (``active -> used``); multi-use
    passes stay active and only ``use_count`` moves.
    """
    now = ensure_utc(now or now_utc())
    candidates = find_candidates(db, raw)
    if len(candidates) != 1:
        if candidates:
            logger.info("Ambiguous gate pass input %r matched %s passes", raw, len(candidates))
            return VerificationResult.rejected(
                PassNotFound("Ambiguous gate pass code. Enter more characters of the code.")
            )
        return VerificationResult.rejected(PassNotFound())

    gate_pass = _apply_lazy_expiry(db, candidates[0], now)
    error = _rejection(gate_pass)
    if error is not None:
        return VerificationResult.rejected(error, gate_pass)

    fields: Dict[str, Any] = {"use_count": GatePass.use_count + 1}
    if gate_pass.validity == PassValidity.SINGLE:
        new_status = PassStatus.USED
        fields["used_at"] = now
    else:
        new_status = PassStatus.ACTIVE

    if not conditional_transition(db, gate_pass.id, PassStatus.ACTIVE, new_status, fields):
        # Another gate changed the pass between the read and the update
        db.refresh(gate_pass)
        logger.warning("Gate pass id=%s lost verification race (now %s)", gate_pass.id, gate_pass.status.value)
        return VerificationResult.rejected(_rejection(gate_pass) or PassAlreadyUsed(), gate_pass)

    db.refresh(gate_pass)
    log_audit(
        db,
        action="GATE_PASS_VERIFY",
        entity_type="gate_passes",
        entity_id=gate_pass.id,
        meta={"status": gate_pass.status, "use_count": gate_pass.use_count},
    )
    logger.info("Gate pass id=%s verified (status=%s)", gate_pass.id, gate_pass.status.value)
    return VerificationResult(
        verified=True,
        message=VALID_MESSAGE,
        pass_=gate_pass,
        outcome=VerificationOutcome.VERIFIED,
    )


def record_gate_pass_usage(
    db: Session,
    pass_id: int,
    usage_type: UsageType,
    now: Optional[datetime] = None,
) -> GatePass:
    """
    Record an exit or a return against a pass.

    Raises:
        PassNotFound, PassExpired, PassRevoked
        InvalidPassUsage: return without an open exit, or a second trip on a
            single-use pass
    """
    now = ensure_utc(now or now_utc())
    gate_pass = get_gate_pass(db, pass_id, now)
    if gate_pass.status == PassStatus.REVOKED:
        raise PassRevoked()
    if gate_pass.status == PassStatus.EXPIRED or _is_overdue(gate_pass, now):
        raise PassExpired()

    exit_time = ensure_utc(gate_pass.exit_time)
    return_time = ensure_utc(gate_pass.return_time)
    trip_open = exit_time is not None and (return_time is None or return_time < exit_time)

    if UsageType(usage_type) == UsageType.EXIT:
        if trip_open:
            raise InvalidPassUsage("Exit already recorded. Record the return first.")
        if gate_pass.validity == PassValidity.SINGLE and exit_time is not None:
            raise InvalidPassUsage("This single-use pass has already been used for a trip.")
        fields: Dict[str, Any] = {"exit_time": now, "return_time": None}
    else:
        if not trip_open:
            raise InvalidPassUsage("Cannot record a return before an exit.")
        if now <= exit_time:
            raise InvalidPassUsage("Return time must be after the exit time.")
        fields = {"return_time": now}

    # Key on the trip state that was read so two gates cannot both record it
    trip_state = [
        GatePass.exit_time.is_(None) if gate_pass.exit_time is None else GatePass.exit_time == gate_pass.exit_time,
        GatePass.return_time.is_(None) if gate_pass.return_time is None else GatePass.return_time == gate_pass.return_time,
    ]
    if not conditional_transition(db, gate_pass.id, gate_pass.status, gate_pass.status, fields, where=trip_state):
        db.refresh(gate_pass)
        raise _rejection(gate_pass) or InvalidPassUsage("The pass changed concurrently, please retry")

    db.refresh(gate_pass)
    log_audit(
        db,
        action="GATE_PASS_USAGE",
        entity_type="gate_passes",
        entity_id=gate_pass.id,
        meta={"usage_type": usage_type, "at": now},
    )
    logger.info("Gate pass id=%s usage recorded: %s", gate_pass.id, UsageType(usage_type).value)
    return gate_pass


def revoke_pass(
    db: Session,
    pass_id: int,
    reason: Optional[str] = None,
    actor_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> GatePass:
    """
    Cancel an active pass.

    Raises:
        PassNotFound
        PassExpired: the pass is past its expiry
        InvalidPassUsage: the pass is no longer active
    """
    gate_pass = get_gate_pass(db, pass_id, now)
    if gate_pass.status == PassStatus.EXPIRED:
        raise PassExpired()
    if not conditional_transition(db, gate_pass.id, PassStatus.ACTIVE, PassStatus.REVOKED):
        db.refresh(gate_pass)
        raise InvalidPassUsage(f"Only active passes can be revoked (status: {gate_pass.status.value})")

    db.refresh(gate_pass)
    log_audit(
        db,
        action="GATE_PASS_REVOKE",
        entity_type="gate_passes",
        entity_id=gate_pass.id,
        meta={"reason": reason},
        actor_id=actor_id,
    )
    logger.info("Gate pass id=%s revoked", gate_pass.id)
    return gate_pass


def expire_overdue_passes(db: Session, now: Optional[datetime] = None) -> int:
    """Batch correction: mark every overdue active pass expired. Returns the count."""
    now = ensure_utc(now or now_utc())
    expired = (
        db.query(GatePass)
        .filter(GatePass.status == PassStatus.ACTIVE, GatePass.expires_at <= now)
        .update({"status": PassStatus.EXPIRED}, synchronize_session=False)
    )
    db.commit()
    if expired:
        logger.info("Expired %s overdue gate pass(es)", expired)
    return expired
