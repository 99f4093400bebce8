from typing import Optional

from fastapi import APIRouter, Depends

from app.core.authorization import ROLE_RANK, Principal, Role, require_role
from app.core.errors import AuthorizationError, ConflictError
from app.database import SessionLocal
from app.models.user import User
from app.schemas.common import Envelope
from app.schemas.user import UserCreate, UserResponse
from app.services.lookups import get_user

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", status_code=201, response_model=Envelope)
def create_user(
    payload: UserCreate,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    # Managers onboard employees; only admins create managers or admins.
    if ROLE_RANK[Role(payload.role)] > ROLE_RANK[Role.EMPLOYEE] and principal.role != Role.ADMIN:
        raise AuthorizationError("Only admins can create managers or admins")

    db = SessionLocal()
    try:
        email = payload.email.strip().lower()
        exists = (
            db.query(User.id)
            .filter(User.company_id == principal.company_id, User.email == email)
            .first()
        )
        if exists is not None:
            raise ConflictError("A user with this email already exists")

        row = User(
            company_id=principal.company_id,
            email=email,
            full_name=payload.full_name,
            role=payload.role,
            position=payload.position,
            department=payload.department,
            is_active=True,
            total_earnings=0,
            pending_earnings=0,
            completed_projects_count=0,
        )
        db.add(row)
        db.commit()
        return {"success": True, "message": "User created successfully", "data": UserResponse.model_validate(row)}
    finally:
        db.close()


@router.get("", response_model=Envelope)
def list_users(
    role: Optional[str] = None,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        q = db.query(User).filter(User.company_id == principal.company_id)
        if role is not None:
            q = q.filter(User.role == role.upper())
        rows = q.order_by(User.id.asc()).all()
        return {
            "success": True,
            "message": "Users retrieved successfully",
            "data": [UserResponse.model_validate(r) for r in rows],
        }
    finally:
        db.close()


@router.get("/me", response_model=Envelope)
def get_me(principal: Principal = Depends(require_role(Role.EMPLOYEE))):
    db = SessionLocal()
    try:
        row = get_user(db, principal.company_id, principal.user_id)
        return {"success": True, "message": "Profile retrieved successfully", "data": UserResponse.model_validate(row)}
    finally:
        db.close()


@router.get("/{user_id}", response_model=Envelope)
def get_user_by_id(
    user_id: int,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    if not principal.is_manager and int(user_id) != principal.user_id:
        raise AuthorizationError("You can only view your own profile")

    db = SessionLocal()
    try:
        row = get_user(db, principal.company_id, user_id)
        return {"success": True, "message": "User retrieved successfully", "data": UserResponse.model_validate(row)}
    finally:
        db.close()
