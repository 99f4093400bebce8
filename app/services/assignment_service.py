"""
Assignment lifecycle.

    pending --accept--> accepted (work: in_progress)
    pending --reject--> rejected (inactive, allocation returned)

    in_progress / rejected / revision_required --submit_work--> submitted
    submitted --verify_work--> verified
    submitted --reject_work--> rejected
    submitted --request_revision--> revision_required

Every function takes the caller's session and leaves the commit to it, so a
budget adjustment and the assignment write land together or not at all.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import assignment_response_hours
from app.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.database import session_scope
from app.models.payment import Payment
from app.models.project import Project
from app.models.project_assignment import PAYMENT_SCHEDULES, ProjectAssignment
from app.models.user import User
from app.services.lookups import fmt_money, get_assignment, get_project, get_user, money, utcnow
from app.services.notification_service import NotificationEvent, emit, emit_many

logger = logging.getLogger(__name__)

# Work statuses from which an employee may (re)submit.
SUBMITTABLE_WORK_STATUSES = ("in_progress", "rejected", "revision_required")

# Listing buckets for an employee's own assignments.
BUCKETS = {
    "pending": {"assignment_status": ("pending",)},
    "accepted": {"assignment_status": ("accepted",)},
    "ongoing": {
        "assignment_status": ("accepted",),
        "work_status": ("in_progress", "rejected", "revision_required"),
    },
    "completed": {
        "assignment_status": ("accepted",),
        "work_status": ("submitted", "verified"),
    },
}

TRACKING_FIELDS = (
    "rate",
    "estimated_hours",
    "actual_hours",
    "estimated_consumables",
    "actual_consumables",
    "estimated_materials",
    "actual_materials",
)


def _active_allocated_total(db: Session, project_id: int) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(ProjectAssignment.allocated_amount), 0))
        .filter(
            ProjectAssignment.project_id == int(project_id),
            ProjectAssignment.is_active.is_(True),
        )
        .scalar()
    )
    return money(total)


def _has_active_assignment(db: Session, project_id: int, employee_id: int) -> bool:
    row = (
        db.query(ProjectAssignment.id)
        .filter(
            ProjectAssignment.project_id == int(project_id),
            ProjectAssignment.employee_id == int(employee_id),
            ProjectAssignment.is_active.is_(True),
        )
        .first()
    )
    return row is not None


def _release_allocation(project: Project, assignment: ProjectAssignment) -> None:
    remaining = money(project.allocated_amount) - money(assignment.allocated_amount)
    project.allocated_amount = remaining if remaining > 0 else Decimal("0.00")


def _require_assignee(assignment: ProjectAssignment, actor_id: int, action: str) -> None:
    if int(assignment.employee_id) != int(actor_id):
        raise AuthorizationError(f"You are not authorized to {action} this assignment")


def _require_submitted(assignment: ProjectAssignment) -> None:
    if not assignment.is_active:
        raise ConflictError("Assignment is no longer active")
    if assignment.work_status != "submitted":
        raise ConflictError(f"Work is not awaiting review (work status: {assignment.work_status})")


def _managers_of(project: Project, assignment: ProjectAssignment) -> List[int]:
    recipients = [int(project.created_by)]
    if assignment.assigned_by is not None and int(assignment.assigned_by) not in recipients:
        recipients.append(int(assignment.assigned_by))
    return recipients


def _notify_managers(
    db: Session,
    project: Project,
    assignment: ProjectAssignment,
    template: str,
    context: Dict[str, Any],
) -> None:
    emit_many(
        db,
        [
            NotificationEvent(
                company_id=int(assignment.company_id),
                recipient_id=recipient_id,
                template=template,
                related_id=int(assignment.id),
                related_type="assignment",
                context=context,
            )
            for recipient_id in _managers_of(project, assignment)
        ],
    )


def _notify_employee(db: Session, assignment: ProjectAssignment, template: str, context: Dict[str, Any]) -> None:
    emit(
        db,
        NotificationEvent(
            company_id=int(assignment.company_id),
            recipient_id=int(assignment.employee_id),
            template=template,
            related_id=int(assignment.id),
            related_type="assignment",
            context=context,
        ),
    )


def _log_transition(assignment: ProjectAssignment, action: str, actor_id: int) -> None:
    logger.info(
        "Assignment transition",
        extra={
            "action": action,
            "assignment_id": assignment.id,
            "project_id": assignment.project_id,
            "employee_id": assignment.employee_id,
            "actor_id": int(actor_id),
            "assignment_status": assignment.assignment_status,
            "work_status": assignment.work_status,
        },
    )


def create_assignment(
    company_id: int,
    project_id: int,
    employee_id: int,
    allocated_amount: Any,
    *,
    assigned_by: int,
    role: str = "team_member",
    payment_terms: Optional[str] = None,
    payment_schedule: str = "project_completion",
    responsibilities: Optional[list] = None,
    deliverables: Optional[list] = None,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> ProjectAssignment:
    if allocated_amount is None or money(allocated_amount) <= 0:
        raise ValidationError("Allocated amount is required and must be greater than 0")
    allocated = money(allocated_amount)

    if payment_schedule not in PAYMENT_SCHEDULES:
        raise ValidationError(f"Invalid payment schedule: {payment_schedule}")

    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        project = get_project(db, company_id, project_id, lock=True)
        employee = get_user(db, company_id, employee_id, role="EMPLOYEE")

        available = money(project.budget) - _active_allocated_total(db, project.id)
        if allocated > available:
            raise ValidationError(f"Insufficient budget. Available: {available}, Requested: {allocated}")

        if _has_active_assignment(db, project.id, employee.id):
            raise ConflictError("Employee is already assigned to this project")

        assignment = ProjectAssignment(
            company_id=int(company_id),
            project_id=project.id,
            employee_id=employee.id,
            assigned_by=int(assigned_by),
            role=role or "team_member",
            is_active=True,
            allocated_amount=allocated,
            currency=project.currency,
            payment_terms=payment_terms,
            payment_schedule=payment_schedule,
            responsibilities=responsibilities or [],
            deliverables=deliverables or [],
            assignment_status="pending",
            work_status="not_started",
            response_deadline=now + timedelta(hours=assignment_response_hours()),
        )
        db.add(assignment)

        project.allocated_amount = money(project.allocated_amount) + allocated
        db.flush()

        _notify_employee(
            db,
            assignment,
            "assignment_created",
            {
                "project_name": project.name,
                "amount": fmt_money(allocated),
                "currency": project.currency,
                "deadline": assignment.response_deadline.strftime("%Y-%m-%d %H:%M UTC"),
            },
        )
        _log_transition(assignment, "create", assigned_by)
        return assignment


def accept_assignment(
    company_id: int,
    assignment_id: int,
    *,
    actor_id: int,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> ProjectAssignment:
    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        assignment = get_assignment(db, company_id, assignment_id, lock=True)
        _require_assignee(assignment, actor_id, "accept")

        if not assignment.is_active:
            raise ConflictError("Assignment is no longer active")
        if assignment.assignment_status != "pending":
            raise ConflictError(f"Assignment is already {assignment.assignment_status}")

        assignment.assignment_status = "accepted"
        assignment.work_status = "in_progress"
        assignment.accepted_at = now
        assignment.work_started_at = now
        db.flush()

        project = get_project(db, company_id, assignment.project_id)
        _notify_managers(
            db,
            project,
            assignment,
            "assignment_accepted",
            {"employee_name": assignment.employee.display_name, "project_name": project.name},
        )
        _log_transition(assignment, "accept", actor_id)
        return assignment


def reject_assignment(
    company_id: int,
    assignment_id: int,
    *,
    actor_id: int,
    reason: Optional[str],
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> ProjectAssignment:
    if not reason or not reason.strip():
        raise ValidationError("Rejection reason is required")

    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        assignment = get_assignment(db, company_id, assignment_id, lock=True)
        _require_assignee(assignment, actor_id, "reject")

        if not assignment.is_active:
            raise ConflictError("Assignment is no longer active")
        if assignment.assignment_status != "pending":
            raise ConflictError(f"Assignment is already {assignment.assignment_status}")

        project = get_project(db, company_id, assignment.project_id, lock=True)

        assignment.assignment_status = "rejected"
        assignment.is_active = False
        assignment.rejected_at = now
        assignment.rejection_reason = reason.strip()
        _release_allocation(project, assignment)
        db.flush()

        _notify_managers(
            db,
            project,
            assignment,
            "assignment_rejected",
            {
                "employee_name": assignment.employee.display_name,
                "project_name": project.name,
                "reason": assignment.rejection_reason,
                "amount": fmt_money(assignment.allocated_amount),
                "currency": assignment.currency,
            },
        )
        _log_transition(assignment, "reject", actor_id)
        return assignment


def submit_work(
    company_id: int,
    assignment_id: int,
    *,
    actor_id: int,
    notes: Optional[str] = None,
    deliverables: Optional[list] = None,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> ProjectAssignment:
    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        assignment = get_assignment(db, company_id, assignment_id, lock=True)
        _require_assignee(assignment, actor_id, "submit work for")

        if assignment.assignment_status != "accepted" or not assignment.is_active:
            raise ConflictError("Assignment must be accepted and active to submit work")
        if assignment.work_status not in SUBMITTABLE_WORK_STATUSES:
            raise ConflictError(f"Work cannot be submitted while {assignment.work_status}")

        assignment.work_status = "submitted"
        assignment.work_submitted_at = now
        assignment.submission_notes = notes
        if deliverables is not None:
            assignment.actual_deliverables = list(deliverables)
        db.flush()

        project = get_project(db, company_id, assignment.project_id)
        emit(
            db,
            NotificationEvent(
                company_id=int(company_id),
                recipient_id=int(project.created_by),
                template="work_submitted",
                related_id=int(assignment.id),
                related_type="assignment",
                context={"employee_name": assignment.employee.display_name, "project_name": project.name},
            ),
        )
        _log_transition(assignment, "submit_work", actor_id)
        return assignment


def verify_work(
    company_id: int,
    assignment_id: int,
    *,
    actor_id: int,
    notes: Optional[str] = None,
    feedback: Optional[str] = None,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> ProjectAssignment:
    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        assignment = get_assignment(db, company_id, assignment_id, lock=True)
        _require_submitted(assignment)

        employee = get_user(db, company_id, assignment.employee_id, lock=True)

        assignment.work_status = "verified"
        assignment.work_verified_at = now
        assignment.work_verified_by = int(actor_id)
        assignment.verification_notes = notes
        assignment.feedback = feedback
        employee.completed_projects_count = int(employee.completed_projects_count or 0) + 1
        db.flush()

        project = get_project(db, company_id, assignment.project_id)
        _notify_employee(
            db,
            assignment,
            "work_verified",
            {
                "project_name": project.name,
                "amount": fmt_money(assignment.allocated_amount),
                "currency": assignment.currency,
                "feedback": feedback,
            },
        )
        _log_transition(assignment, "verify_work", actor_id)
        return assignment


def reject_work(
    company_id: int,
    assignment_id: int,
    *,
    actor_id: int,
    reason: Optional[str],
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> ProjectAssignment:
    if not reason or not reason.strip():
        raise ValidationError("Rejection reason is required")

    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        assignment = get_assignment(db, company_id, assignment_id, lock=True)
        _require_submitted(assignment)

        assignment.work_status = "rejected"
        assignment.work_rejected_at = now
        assignment.work_rejection_reason = reason.strip()
        db.flush()

        project = get_project(db, company_id, assignment.project_id)
        _notify_employee(
            db,
            assignment,
            "work_rejected",
            {"project_name": project.name, "reason": assignment.work_rejection_reason},
        )
        _log_transition(assignment, "reject_work", actor_id)
        return assignment


def request_revision(
    company_id: int,
    assignment_id: int,
    *,
    actor_id: int,
    notes: Optional[str] = None,
    deadline: Optional[datetime] = None,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> ProjectAssignment:
    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        assignment = get_assignment(db, company_id, assignment_id, lock=True)
        _require_submitted(assignment)

        assignment.work_status = "revision_required"
        assignment.revision_requested_at = now
        assignment.revision_notes = notes
        assignment.revision_deadline = deadline
        db.flush()

        project = get_project(db, company_id, assignment.project_id)
        _notify_employee(
            db,
            assignment,
            "revision_requested",
            {
                "project_name": project.name,
                "notes": notes,
                "deadline": deadline.strftime("%Y-%m-%d") if deadline is not None else None,
            },
        )
        _log_transition(assignment, "request_revision", actor_id)
        return assignment


def remove_employee(
    company_id: int,
    assignment_id: int,
    *,
    actor_id: int,
    db: Optional[Session] = None,
) -> ProjectAssignment:
    """
    Soft-delete an assignment.

    The allocation goes back to the project unless money has already been
    committed against it, i.e. a payment exists that was not rejected.
    """
    with session_scope(db) as db:
        assignment = get_assignment(db, company_id, assignment_id, lock=True)
        if not assignment.is_active:
            raise ConflictError("Assignment is already inactive")

        project = get_project(db, company_id, assignment.project_id, lock=True)

        committed_payment = (
            db.query(Payment.id)
            .filter(
                Payment.assignment_id == assignment.id,
                Payment.request_status != "rejected",
            )
            .first()
        )

        assignment.is_active = False
        if committed_payment is None:
            _release_allocation(project, assignment)
        db.flush()

        _notify_employee(db, assignment, "assignment_removed", {"project_name": project.name})
        logger.info(
            "Assignment removed",
            extra={
                "assignment_id": assignment.id,
                "project_id": project.id,
                "actor_id": int(actor_id),
                "allocation_returned": committed_payment is None,
            },
        )
        return assignment


def update_assignment_role(
    company_id: int,
    assignment_id: int,
    *,
    role: Optional[str],
    db: Optional[Session] = None,
) -> ProjectAssignment:
    if not role or not role.strip():
        raise ValidationError("Role is required")

    with session_scope(db) as db:
        assignment = get_assignment(db, company_id, assignment_id)
        assignment.role = role.strip()
        db.flush()
        return assignment


def update_assignment_tracking(
    company_id: int,
    assignment_id: int,
    *,
    changes: Dict[str, Any],
    db: Optional[Session] = None,
) -> ProjectAssignment:
    unknown = sorted(set(changes) - set(TRACKING_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown tracking fields: {', '.join(unknown)}")

    for name, value in changes.items():
        if value is None or money(value) < 0:
            raise ValidationError(f"{name} must be a non-negative number")

    with session_scope(db) as db:
        assignment = get_assignment(db, company_id, assignment_id)
        for name, value in changes.items():
            setattr(assignment, name, money(value))
        db.flush()
        return assignment


def list_project_assignments(db: Session, company_id: int, project_id: int) -> List[ProjectAssignment]:
    project = get_project(db, company_id, project_id)
    return (
        db.query(ProjectAssignment)
        .filter(
            ProjectAssignment.company_id == int(company_id),
            ProjectAssignment.project_id == project.id,
            ProjectAssignment.is_active.is_(True),
        )
        .order_by(ProjectAssignment.id.asc())
        .all()
    )


def list_employee_assignments(
    db: Session,
    company_id: int,
    employee_id: int,
    *,
    bucket: Optional[str] = None,
) -> List[ProjectAssignment]:
    q = db.query(ProjectAssignment).filter(
        ProjectAssignment.company_id == int(company_id),
        ProjectAssignment.employee_id == int(employee_id),
    )

    if bucket is not None:
        rules = BUCKETS.get(bucket)
        if rules is None:
            raise ValidationError(f"Unknown bucket: {bucket}")
        q = q.filter(ProjectAssignment.is_active.is_(True))
        q = q.filter(ProjectAssignment.assignment_status.in_(rules["assignment_status"]))
        if "work_status" in rules:
            q = q.filter(ProjectAssignment.work_status.in_(rules["work_status"]))

    return q.order_by(ProjectAssignment.created_at.desc(), ProjectAssignment.id.desc()).all()


def get_own_assignment(db: Session, company_id: int, employee_id: int, assignment_id: int) -> ProjectAssignment:
    assignment = (
        db.query(ProjectAssignment)
        .filter(
            ProjectAssignment.id == int(assignment_id),
            ProjectAssignment.company_id == int(company_id),
            ProjectAssignment.employee_id == int(employee_id),
        )
        .first()
    )
    if assignment is None:
        raise NotFoundError("Assignment not found or you don't have access to it")
    return assignment


def list_teammates(db: Session, company_id: int, project_id: int, employee_id: int) -> List[User]:
    if not _has_active_assignment(db, project_id, employee_id):
        raise AuthorizationError("You are not assigned to this project")

    return (
        db.query(User)
        .join(ProjectAssignment, ProjectAssignment.employee_id == User.id)
        .filter(
            ProjectAssignment.company_id == int(company_id),
            ProjectAssignment.project_id == int(project_id),
            ProjectAssignment.is_active.is_(True),
            ProjectAssignment.employee_id != int(employee_id),
        )
        .order_by(User.id.asc())
        .all()
    )
