from typing import Optional

from fastapi import APIRouter, Depends

from app.core.authorization import Principal, Role, require_role
from app.core.errors import ValidationError
from app.database import SessionLocal
from app.schemas.assignment import (
    AssignmentCreate,
    AssignmentResponse,
    Bucket,
    ReasonBody,
    RevisionRequest,
    RoleUpdate,
    TrackingUpdate,
    WorkSubmit,
    WorkVerify,
)
from app.schemas.common import Envelope
from app.schemas.user import TeammateResponse
from app.services import assignment_service

router = APIRouter(prefix="/assignments", tags=["Assignments"])


def _assignment_response(message: str, row) -> dict:
    return {"success": True, "message": message, "assignment": AssignmentResponse.model_validate(row)}


@router.post("", status_code=201)
def assign_employee(
    payload: AssignmentCreate,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = assignment_service.create_assignment(
            principal.company_id,
            payload.project_id,
            payload.employee_id,
            payload.allocated_amount,
            assigned_by=principal.user_id,
            role=payload.role,
            payment_terms=payload.payment_terms,
            payment_schedule=payload.payment_schedule,
            responsibilities=payload.responsibilities,
            deliverables=payload.deliverables,
            db=db,
        )
        db.commit()
        return _assignment_response("Employee assigned to project successfully", row)
    finally:
        db.close()


@router.get("/mine", response_model=Envelope)
def list_my_assignments(
    bucket: Optional[Bucket] = None,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        rows = assignment_service.list_employee_assignments(
            db, principal.company_id, principal.user_id, bucket=bucket
        )
        return {
            "success": True,
            "message": "Assignments retrieved successfully",
            "data": [AssignmentResponse.model_validate(r) for r in rows],
        }
    finally:
        db.close()


@router.get("/project/{project_id}", response_model=Envelope)
def list_project_assignments(
    project_id: int,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        rows = assignment_service.list_project_assignments(db, principal.company_id, project_id)
        return {
            "success": True,
            "message": "Project assignments retrieved successfully",
            "data": [AssignmentResponse.model_validate(r) for r in rows],
        }
    finally:
        db.close()


@router.get("/project/{project_id}/teammates", response_model=Envelope)
def list_teammates(
    project_id: int,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        rows = assignment_service.list_teammates(db, principal.company_id, project_id, principal.user_id)
        return {
            "success": True,
            "message": "Project teammates retrieved successfully",
            "data": [TeammateResponse.model_validate(r) for r in rows],
        }
    finally:
        db.close()


@router.get("/{assignment_id}")
def get_my_assignment(
    assignment_id: int,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        row = assignment_service.get_own_assignment(db, principal.company_id, principal.user_id, assignment_id)
        return _assignment_response("Assignment retrieved successfully", row)
    finally:
        db.close()


@router.post("/{assignment_id}/accept")
def accept_assignment(
    assignment_id: int,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        row = assignment_service.accept_assignment(
            principal.company_id, assignment_id, actor_id=principal.user_id, db=db
        )
        db.commit()
        return _assignment_response("Assignment accepted successfully", row)
    finally:
        db.close()


@router.post("/{assignment_id}/reject")
def reject_assignment(
    assignment_id: int,
    payload: ReasonBody,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        row = assignment_service.reject_assignment(
            principal.company_id, assignment_id, actor_id=principal.user_id, reason=payload.reason, db=db
        )
        db.commit()
        return _assignment_response("Assignment rejected", row)
    finally:
        db.close()


@router.post("/{assignment_id}/submit-work")
def submit_work(
    assignment_id: int,
    payload: WorkSubmit,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        row = assignment_service.submit_work(
            principal.company_id,
            assignment_id,
            actor_id=principal.user_id,
            notes=payload.notes,
            deliverables=payload.deliverables,
            db=db,
        )
        db.commit()
        return _assignment_response("Work submitted successfully", row)
    finally:
        db.close()


@router.post("/{assignment_id}/verify")
def verify_work(
    assignment_id: int,
    payload: WorkVerify,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = assignment_service.verify_work(
            principal.company_id,
            assignment_id,
            actor_id=principal.user_id,
            notes=payload.notes,
            feedback=payload.feedback,
            db=db,
        )
        db.commit()
        return _assignment_response("Work verified successfully", row)
    finally:
        db.close()


@router.post("/{assignment_id}/reject-work")
def reject_work(
    assignment_id: int,
    payload: ReasonBody,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = assignment_service.reject_work(
            principal.company_id, assignment_id, actor_id=principal.user_id, reason=payload.reason, db=db
        )
        db.commit()
        return _assignment_response("Work rejected", row)
    finally:
        db.close()


@router.post("/{assignment_id}/request-revision")
def request_revision(
    assignment_id: int,
    payload: RevisionRequest,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = assignment_service.request_revision(
            principal.company_id,
            assignment_id,
            actor_id=principal.user_id,
            notes=payload.notes,
            deadline=payload.deadline,
            db=db,
        )
        db.commit()
        return _assignment_response("Revision requested", row)
    finally:
        db.close()


@router.put("/{assignment_id}/role")
def update_role(
    assignment_id: int,
    payload: RoleUpdate,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = assignment_service.update_assignment_role(
            principal.company_id, assignment_id, role=payload.role, db=db
        )
        db.commit()
        return _assignment_response("Assignment role updated successfully", row)
    finally:
        db.close()


@router.patch("/{assignment_id}/tracking")
def update_tracking(
    assignment_id: int,
    payload: TrackingUpdate,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No tracking fields provided")

    db = SessionLocal()
    try:
        row = assignment_service.update_assignment_tracking(
            principal.company_id, assignment_id, changes=changes, db=db
        )
        db.commit()
        return _assignment_response("Assignment tracking updated successfully", row)
    finally:
        db.close()


@router.delete("/{assignment_id}")
def remove_employee(
    assignment_id: int,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = assignment_service.remove_employee(
            principal.company_id, assignment_id, actor_id=principal.user_id, db=db
        )
        db.commit()
        return _assignment_response("Employee removed from project successfully", row)
    finally:
        db.close()
