from typing import Optional

from fastapi import APIRouter, Depends

from app.core.authorization import Principal, Role, require_role
from app.database import SessionLocal
from app.schemas.common import Envelope
from app.schemas.project import ProjectCreate, ProjectResponse, ProjectUpdate
from app.services import project_service

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.post("", status_code=201, response_model=Envelope)
def create_project(
    payload: ProjectCreate,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = project_service.create_project(
            principal.company_id,
            created_by=principal.user_id,
            values=payload.model_dump(),
            db=db,
        )
        db.commit()
        return {"success": True, "message": "Project created successfully", "data": ProjectResponse.model_validate(row)}
    finally:
        db.close()


@router.get("", response_model=Envelope)
def list_projects(
    status: Optional[str] = None,
    name: Optional[str] = None,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        rows = project_service.list_projects(
            db,
            principal.company_id,
            status=status,
            name=name,
            employee_id=None if principal.is_manager else principal.user_id,
        )
        return {
            "success": True,
            "message": "Projects retrieved successfully",
            "data": [ProjectResponse.model_validate(r) for r in rows],
        }
    finally:
        db.close()


@router.get("/{project_id}", response_model=Envelope)
def get_project(
    project_id: int,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        row = project_service.get_project_for(
            db,
            principal.company_id,
            project_id,
            viewer_id=principal.user_id,
            is_manager=principal.is_manager,
        )
        return {"success": True, "message": "Project retrieved successfully", "data": ProjectResponse.model_validate(row)}
    finally:
        db.close()


@router.patch("/{project_id}", response_model=Envelope)
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = project_service.update_project(
            principal.company_id,
            project_id,
            changes=payload.model_dump(exclude_unset=True),
            db=db,
        )
        db.commit()
        return {"success": True, "message": "Project updated successfully", "data": ProjectResponse.model_validate(row)}
    finally:
        db.close()
