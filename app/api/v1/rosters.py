"""
Roster endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db
from app.core.exceptions import NotFound
from app.models.roster import Roster
from app.schemas.roster import RosterOut, RosterUpsert
from app.services.lateness import calculate_expected_working_hours
from app.services.roster_service import get_roster, upsert_roster

router = APIRouter()


def _roster_out(roster: Roster) -> RosterOut:
    out = RosterOut.model_validate(roster)
    out.expected_working_hours = calculate_expected_working_hours(roster)
    return out


@router.put("/{employee_id}", response_model=RosterOut)
async def upsert_roster_endpoint(
    employee_id: int,
    body: RosterUpsert,
    db: Session = Depends(get_db),
):
    """
    Assign or replace an employee's roster.

    Stored lateness is not rewritten; call POST /attendance/lateness/recompute
    to re-derive it for past days.
    """
    roster = upsert_roster(db, employee_id, **body.model_dump())
    return _roster_out(roster)


@router.get("/{employee_id}", response_model=RosterOut)
async def get_roster_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
):
    roster = get_roster(db, employee_id)
    if roster is None:
        raise NotFound("Roster not found")
    return _roster_out(roster)
