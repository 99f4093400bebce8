from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.core.config import app_env
from app.database import SessionLocal
from app.models.user import User
from app.services.auth_service import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])


class TokenRequest(BaseModel):
    user_id: int
    company_id: int


@router.post("/token")
def issue_token(payload: TokenRequest):
    if app_env() not in {"dev", "local", "test"}:
        raise HTTPException(status_code=404, detail="Not Found")

    db = SessionLocal()
    try:
        user = (
            db.query(User)
            .filter(
                User.id == int(payload.user_id),
                User.company_id == int(payload.company_id),
                User.is_active.is_(True),
            )
            .first()
        )
        if user is None:
            raise HTTPException(status_code=404, detail="User not found")
        role = user.role
    finally:
        db.close()

    try:
        token = create_access_token(user_id=int(payload.user_id), company_id=int(payload.company_id), role=role)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {
        "access_token": token,
        "token_type": "bearer",
        "role": role,
    }
