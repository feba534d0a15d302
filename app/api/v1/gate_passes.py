"""
Gate pass endpoints
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import get_clock, get_db
from app.core.exceptions import PassCodeCollision
from app.models.gate_pass import PassStatus
from app.schemas.gate_pass import (
    ExpireOverdueResponse,
    GatePassCreate,
    GatePassListResponse,
    GatePassOut,
    RevokeRequest,
    UsageRequest,
    VerifyRequest,
    VerifyResponse,
)
from app.services.gate_pass_service import (
    create_gate_pass,
    expire_overdue_passes,
    get_gate_pass,
    list_gate_passes,
    record_gate_pass_usage,
    revoke_pass,
    verify_gate_pass,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=GatePassOut, status_code=201)
async def create_gate_pass_endpoint(
    body: GatePassCreate,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """Issue a gate pass; a code collision is retried with a fresh code"""
    attempts = settings.PASS_CODE_INSERT_ATTEMPTS
    for attempt in range(1, attempts + 1):
        try:
            return create_gate_pass(
                db,
                body.employee_id,
                body.validity,
                body.type,
                body.reason,
                now=now,
                actor_id=body.actor_id,
                expected_exit_time=body.expected_exit_time,
                expected_return_time=body.expected_return_time,
            )
        except PassCodeCollision:
            if attempt == attempts:
                raise
            logger.info("Pass code collision, retrying (%s/%s)", attempt, attempts)


@router.get("", response_model=GatePassListResponse)
async def list_gate_passes_endpoint(
    employee_id: Optional[int] = Query(None, description="Filter by employee"),
    status: Optional[PassStatus] = Query(None, description="Filter by status"),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """List gate passes, newest first. Overdue active passes are reported as expired."""
    items = list_gate_passes(db, employee_id=employee_id, status=status, now=now)
    return GatePassListResponse(
        items=[GatePassOut.model_validate(p) for p in items],
        total=len(items),
    )


@router.post("/verify", response_model=VerifyResponse)
async def verify_gate_pass_endpoint(
    body: VerifyRequest,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """
    Verify a scanned or typed code.

    Always 200: ``verified`` and ``outcome`` say whether the holder may pass.
    A valid single-use pass is consumed by this call.
    """
    result = verify_gate_pass(db, body.code, now)
    return VerifyResponse(
        verified=result.verified,
        message=result.message,
        outcome=result.outcome,
        code=result.code,
        gate_pass=GatePassOut.model_validate(result.pass_) if result.pass_ is not None else None,
    )


@router.post("/expire-overdue", response_model=ExpireOverdueResponse)
async def expire_overdue_endpoint(
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """Mark every overdue active pass as expired"""
    return ExpireOverdueResponse(expired=expire_overdue_passes(db, now))


@router.get("/{pass_id}", response_model=GatePassOut)
async def get_gate_pass_endpoint(
    pass_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """A pass past its expiry is reported (and stored) as expired"""
    return get_gate_pass(db, pass_id, now)


@router.post("/{pass_id}/usage", response_model=GatePassOut)
async def record_usage_endpoint(
    pass_id: int,
    body: UsageRequest,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    """Record an exit or a return; a return needs a prior exit"""
    return record_gate_pass_usage(db, pass_id, body.usage_type, now)


@router.post("/{pass_id}/revoke", response_model=GatePassOut)
async def revoke_gate_pass_endpoint(
    pass_id: int,
    body: Optional[RevokeRequest] = None,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    body = body or RevokeRequest()
    return revoke_pass(db, pass_id, reason=body.reason, actor_id=body.actor_id, now=now)
