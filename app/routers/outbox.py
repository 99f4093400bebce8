from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.core.authorization import Principal, Role, require_role
from app.database import SessionLocal
from app.models.event_outbox import EventOutbox

router = APIRouter(prefix="/outbox", tags=["Outbox"])


class OutboxRow(BaseModel):
    id: int
    company_id: int
    event_type: str
    processed: bool
    retry_count: int
    last_error: Optional[str]
    created_at: str
    processed_at: Optional[str]


class OutboxListResponse(BaseModel):
    limit: int
    offset: int
    rows: List[OutboxRow]


@router.get("", response_model=OutboxListResponse)
def list_outbox(
    processed: Optional[bool] = None,
    event_type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0, le=1_000_000),
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        q = db.query(EventOutbox).filter(EventOutbox.company_id == principal.company_id)

        if processed is not None:
            q = q.filter(EventOutbox.processed == bool(processed))
        if event_type is not None:
            q = q.filter(EventOutbox.event_type == event_type)

        rows = q.order_by(EventOutbox.id.asc()).limit(int(limit)).offset(int(offset)).all()

        return {
            "limit": int(limit),
            "offset": int(offset),
            "rows": [
                {
                    "id": r.id,
                    "company_id": r.company_id,
                    "event_type": r.event_type,
                    "processed": r.processed,
                    "retry_count": r.retry_count,
                    "last_error": r.last_error,
                    "created_at": r.created_at.isoformat(),
                    "processed_at": None if r.processed_at is None else r.processed_at.isoformat(),
                }
                for r in rows
            ],
        }
    finally:
        db.close()
