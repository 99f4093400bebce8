from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.models.payment import Payment
from app.models.project import Project
from app.models.project_assignment import ProjectAssignment
from app.models.user import User

CENT = Decimal("0.01")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0.00")
    try:
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Invalid amount: {value}")


def fmt_money(value: Any) -> str:
    return f"{money(value):,.2f}"


def get_project(db: Session, company_id: int, project_id: int, *, lock: bool = False) -> Project:
    q = db.query(Project).filter(
        Project.id == int(project_id),
        Project.company_id == int(company_id),
    )
    if lock:
        q = q.with_for_update()
    project = q.first()
    if project is None:
        raise NotFoundError("Project not found")
    return project


def get_user(
    db: Session,
    company_id: int,
    user_id: int,
    *,
    role: Optional[str] = None,
    lock: bool = False,
) -> User:
    q = db.query(User).filter(
        User.id == int(user_id),
        User.company_id == int(company_id),
    )
    if role is not None:
        q = q.filter(User.role == role, User.is_active.is_(True))
    if lock:
        q = q.with_for_update()
    user = q.first()
    if user is None:
        raise NotFoundError("Employee not found" if role == "EMPLOYEE" else "User not found")
    return user


def get_assignment(db: Session, company_id: int, assignment_id: int, *, lock: bool = False) -> ProjectAssignment:
    q = db.query(ProjectAssignment).filter(
        ProjectAssignment.id == int(assignment_id),
        ProjectAssignment.company_id == int(company_id),
    )
    if lock:
        q = q.with_for_update()
    assignment = q.first()
    if assignment is None:
        raise NotFoundError("Assignment not found")
    return assignment


def get_payment(db: Session, company_id: int, payment_id: int, *, lock: bool = False) -> Payment:
    q = db.query(Payment).filter(
        Payment.id == int(payment_id),
        Payment.company_id == int(company_id),
    )
    if lock:
        q = q.with_for_update()
    payment = q.first()
    if payment is None:
        raise NotFoundError("Payment not found")
    return payment
