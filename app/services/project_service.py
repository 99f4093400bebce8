import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import default_currency
from app.core.errors import AuthorizationError, ValidationError
from app.database import session_scope
from app.models.project import PROJECT_PRIORITIES, PROJECT_STATUSES, PROJECT_TYPES, Project
from app.models.project_assignment import ProjectAssignment
from app.services.lookups import get_project, money

logger = logging.getLogger(__name__)

MONEY_FIELDS = (
    "budget",
    "rate",
    "estimated_hours",
    "actual_hours",
    "estimated_consumables",
    "actual_consumables",
    "estimated_materials",
    "actual_materials",
)

UPDATABLE_FIELDS = MONEY_FIELDS + (
    "name",
    "description",
    "project_type",
    "status",
    "priority",
    "start_date",
    "deadline",
    "currency",
)


def _validate(values: Dict[str, Any]) -> None:
    if "name" in values and (values["name"] is None or not str(values["name"]).strip()):
        raise ValidationError("Project name is required")
    if "status" in values and values["status"] not in PROJECT_STATUSES:
        raise ValidationError(f"Invalid project status: {values['status']}")
    if "project_type" in values and values["project_type"] not in PROJECT_TYPES:
        raise ValidationError(f"Invalid project type: {values['project_type']}")
    if "priority" in values and values["priority"] not in PROJECT_PRIORITIES:
        raise ValidationError(f"Invalid priority: {values['priority']}")
    for name in MONEY_FIELDS:
        if name in values and (values[name] is None or money(values[name]) < 0):
            raise ValidationError(f"{name} must be a non-negative number")


def create_project(
    company_id: int,
    *,
    created_by: int,
    values: Dict[str, Any],
    db: Optional[Session] = None,
) -> Project:
    values = {k: v for k, v in values.items() if v is not None}
    if "name" not in values:
        raise ValidationError("Project name is required")
    _validate(values)

    for name in MONEY_FIELDS:
        if name in values:
            values[name] = money(values[name])

    with session_scope(db) as db:
        project = Project(
            company_id=int(company_id),
            created_by=int(created_by),
            currency=values.pop("currency", None) or default_currency(),
            allocated_amount=0,
            spent_amount=0,
            **values,
        )
        db.add(project)
        db.flush()

        logger.info(
            "Project created",
            extra={"project_id": project.id, "company_id": project.company_id, "budget": str(project.budget)},
        )
        return project


def update_project(
    company_id: int,
    project_id: int,
    *,
    changes: Dict[str, Any],
    db: Optional[Session] = None,
) -> Project:
    unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}")
    _validate(changes)

    with session_scope(db) as db:
        project = get_project(db, company_id, project_id, lock=True)

        if "budget" in changes and money(changes["budget"]) < money(project.allocated_amount):
            raise ValidationError(
                f"Budget cannot be lower than the allocated amount ({money(project.allocated_amount)})"
            )

        for name, value in changes.items():
            setattr(project, name, money(value) if name in MONEY_FIELDS else value)
        db.flush()
        return project


def list_projects(
    db: Session,
    company_id: int,
    *,
    status: Optional[str] = None,
    name: Optional[str] = None,
    employee_id: Optional[int] = None,
) -> List[Project]:
    q = db.query(Project).filter(Project.company_id == int(company_id))
    if status is not None:
        q = q.filter(Project.status == status)
    if name:
        q = q.filter(Project.name.ilike(f"%{name}%"))
    if employee_id is not None:
        q = q.join(ProjectAssignment, ProjectAssignment.project_id == Project.id).filter(
            ProjectAssignment.employee_id == int(employee_id),
            ProjectAssignment.is_active.is_(True),
        )
    return q.order_by(Project.created_at.desc(), Project.id.desc()).all()


def get_project_for(db: Session, company_id: int, project_id: int, *, viewer_id: int, is_manager: bool) -> Project:
    project = get_project(db, company_id, project_id)
    if is_manager:
        return project

    assigned = (
        db.query(ProjectAssignment.id)
        .filter(
            ProjectAssignment.project_id == project.id,
            ProjectAssignment.employee_id == int(viewer_id),
            ProjectAssignment.is_active.is_(True),
        )
        .first()
    )
    if assigned is None:
        raise AuthorizationError("You are not assigned to this project")
    return project
