from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.authorization import Principal, Role, require_role
from app.database import SessionLocal
from app.schemas.common import Envelope
from app.schemas.notification import NotificationResponse
from app.services import notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=Envelope)
def list_notifications(
    type: Optional[str] = None,
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=1_000_000),
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        rows = notification_service.list_notifications(
            db,
            company_id=principal.company_id,
            user_id=principal.user_id,
            type=type,
            unread_only=unread_only,
            limit=limit,
            offset=offset,
        )
        unread = notification_service.count_unread(db, company_id=principal.company_id, user_id=principal.user_id)
        return {
            "success": True,
            "message": "Notifications retrieved successfully",
            "data": {
                "notifications": [NotificationResponse.model_validate(r) for r in rows],
                "unread_count": unread,
            },
        }
    finally:
        db.close()


@router.post("/read-all", response_model=Envelope)
def mark_all_read(principal: Principal = Depends(require_role(Role.EMPLOYEE))):
    db = SessionLocal()
    try:
        updated = notification_service.mark_all_read(
            db, company_id=principal.company_id, user_id=principal.user_id
        )
        db.commit()
        return {"success": True, "message": "All notifications marked as read", "data": {"updated": updated}}
    finally:
        db.close()


@router.post("/{notification_id}/read", response_model=Envelope)
def mark_read(
    notification_id: int,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        row = notification_service.mark_read(
            db,
            company_id=principal.company_id,
            user_id=principal.user_id,
            notification_id=notification_id,
        )
        db.commit()
        return {
            "success": True,
            "message": "Notification marked as read",
            "data": NotificationResponse.model_validate(row),
        }
    finally:
        db.close()


@router.delete("/{notification_id}", response_model=Envelope)
def delete_notification(
    notification_id: int,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        notification_service.delete_notification(
            db,
            company_id=principal.company_id,
            user_id=principal.user_id,
            notification_id=notification_id,
        )
        db.commit()
        return {"success": True, "message": "Notification deleted successfully"}
    finally:
        db.close()
