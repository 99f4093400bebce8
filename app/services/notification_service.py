import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.errors import AuthorizationError, NotFoundError
from app.models.event_outbox import EventOutbox
from app.models.notification import Notification
from app.services import notification_templates

logger = logging.getLogger(__name__)

NOTIFICATION_REQUESTED = "NOTIFICATION_REQUESTED"


@dataclass(frozen=True)
class NotificationEvent:
    company_id: int
    recipient_id: int
    template: str
    related_id: Optional[int] = None
    related_type: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)


def _payload(event: NotificationEvent) -> dict:
    rendered = notification_templates.render(event.template, event.context)
    return {
        "recipient_id": int(event.recipient_id),
        "template": event.template,
        "title": rendered["title"],
        "message": rendered["message"],
        "type": rendered["type"],
        "priority": rendered["priority"],
        "related_id": event.related_id,
        "related_type": event.related_type,
    }


def emit(db: Session, event: NotificationEvent) -> None:
    """
    Queue a notification inside a savepoint of the caller's transaction.

    Delivery happens in the outbox processor once the transition commits.
    Anything that goes wrong here is logged and dropped; the transition
    that triggered the notification carries on.
    """
    try:
        payload = _payload(event)
        with db.begin_nested():
            db.add(
                EventOutbox(
                    company_id=int(event.company_id),
                    event_type=NOTIFICATION_REQUESTED,
                    idempotency_key=f"{event.template}:{event.related_type}:{event.related_id}:"
                    f"{event.recipient_id}:{uuid.uuid4().hex}",
                    payload=payload,
                    processed=False,
                    retry_count=0,
                )
            )
            db.flush()
    except Exception:
        logger.exception(
            "Notification enqueue failed",
            extra={
                "template": event.template,
                "recipient_id": event.recipient_id,
                "company_id": event.company_id,
            },
        )


def emit_many(db: Session, events: List[NotificationEvent]) -> None:
    seen = set()
    for event in events:
        if event.recipient_id is None:
            continue
        key = (event.recipient_id, event.template)
        if key in seen:
            continue
        seen.add(key)
        emit(db, event)


def deliver(db: Session, row: EventOutbox) -> Notification:
    """Persist the Notification for an outbox row. Safe to call twice for the same row."""
    existing = db.query(Notification).filter(Notification.source_event_id == row.id).first()
    if existing is not None:
        return existing

    payload = row.payload or {}
    notification = Notification(
        company_id=int(row.company_id),
        user_id=int(payload["recipient_id"]),
        title=str(payload["title"])[:100],
        message=str(payload["message"]),
        type=payload.get("type") or "general",
        related_id=payload.get("related_id"),
        related_type=payload.get("related_type"),
        priority=payload.get("priority") or "medium",
        is_read=False,
        source_event_id=row.id,
    )
    db.add(notification)
    db.flush()
    return notification


def list_notifications(
    db: Session,
    *,
    company_id: int,
    user_id: int,
    type: Optional[str] = None,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> List[Notification]:
    q = db.query(Notification).filter(
        Notification.company_id == int(company_id),
        Notification.user_id == int(user_id),
    )
    if type is not None:
        q = q.filter(Notification.type == str(type))
    if unread_only:
        q = q.filter(Notification.is_read.is_(False))

    return (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(int(offset))
        .limit(int(limit))
        .all()
    )


def count_unread(db: Session, *, company_id: int, user_id: int) -> int:
    return (
        db.query(Notification)
        .filter(
            Notification.company_id == int(company_id),
            Notification.user_id == int(user_id),
            Notification.is_read.is_(False),
        )
        .count()
    )


def _get_owned(db: Session, *, company_id: int, user_id: int, notification_id: int) -> Notification:
    notification = (
        db.query(Notification)
        .filter(
            Notification.id == int(notification_id),
            Notification.company_id == int(company_id),
        )
        .first()
    )
    if notification is None:
        raise NotFoundError("Notification not found")
    if int(notification.user_id) != int(user_id):
        raise AuthorizationError("You are not authorized to access this notification")
    return notification


def mark_read(db: Session, *, company_id: int, user_id: int, notification_id: int) -> Notification:
    notification = _get_owned(db, company_id=company_id, user_id=user_id, notification_id=notification_id)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        db.flush()
    return notification


def mark_all_read(db: Session, *, company_id: int, user_id: int) -> int:
    return (
        db.query(Notification)
        .filter(
            Notification.company_id == int(company_id),
            Notification.user_id == int(user_id),
            Notification.is_read.is_(False),
        )
        .update(
            {Notification.is_read: True, Notification.read_at: datetime.now(timezone.utc)},
            synchronize_session=False,
        )
    )


def delete_notification(db: Session, *, company_id: int, user_id: int, notification_id: int) -> None:
    notification = _get_owned(db, company_id=company_id, user_id=user_id, notification_id=notification_id)
    db.delete(notification)
    db.flush()
