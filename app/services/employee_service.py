"""
Employee service - the employees scans and gate passes refer to
"""
import json
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFound, StoreConflict
from app.models.employee import Employee
from app.schemas.employee import EmployeeCreate

logger = logging.getLogger(__name__)


def create_employee(db: Session, employee_data: EmployeeCreate) -> Employee:
    """
    Create a new employee

    Raises:
        StoreConflict: emp_code already exists
    """
    existing = db.query(Employee).filter(Employee.emp_code == employee_data.emp_code).first()
    if existing:
        raise StoreConflict(f"Employee code '{employee_data.emp_code}' already exists")

    employee = Employee(**employee_data.model_dump())
    db.add(employee)
    db.commit()
    db.refresh(employee)
    logger.info("Employee created: id=%s emp_code=%s", employee.id, employee.emp_code)
    return employee


def list_employees(db: Session, active: Optional[bool] = None) -> List[Employee]:
    query = db.query(Employee)
    if active is not None:
        query = query.filter(Employee.active == active)
    return list(query.order_by(Employee.emp_code).all())


def get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise NotFound("Employee not found")
    return employee


def get_active_employee(db: Session, employee_id: int) -> Employee:
    """Employee allowed to scan or hold a pass."""
    employee = get_employee(db, employee_id)
    if not employee.active:
        raise NotFound("Employee is inactive")
    return employee


def resolve_employee_from_qr(db: Session, qr_data: str) -> Employee:
    """
    Find the employee a badge QR refers to.

    Accepts a JSON object with ``employee_id``/``id`` or ``emp_code``, a bare
    numeric id, or a bare employee code.
    """
    text = (qr_data or "").strip()
    if not text:
        raise NotFound("Empty QR code")

    payload = None
    if text.startswith("{"):
        try:
            payload = json.loads(text)
        except ValueError:
            raise NotFound("Unreadable QR code")

    if isinstance(payload, dict):
        employee_id = payload.get("employee_id") or payload.get("id")
        if employee_id is not None:
            try:
                return get_active_employee(db, int(employee_id))
            except (TypeError, ValueError):
                raise NotFound("Unreadable QR code")
        text = str(payload.get("emp_code") or "").strip()

    employee = db.query(Employee).filter(Employee.emp_code == text).first()
    if employee is None and text.isdigit():
        employee = db.query(Employee).filter(Employee.id == int(text)).first()
    if employee is None:
        raise NotFound("No employee matches this QR code")
    return get_active_employee(db, employee.id)
