import logging
from typing import Any

from sqlalchemy.orm import Session

from app.models.event_outbox import EventOutbox

logger = logging.getLogger(__name__)


def handle_notification_requested(row: EventOutbox, db: Session) -> None:
    payload: Any = row.payload or {}

    if not isinstance(payload, dict) or payload.get("recipient_id") is None:
        logger.info(
            "NOTIFICATION_REQUESTED missing recipient_id; skipping",
            extra={"event_outbox_id": row.id},
        )
        return

    from app.services.notification_service import deliver

    notification = deliver(db, row)
    logger.info(
        "Notification delivered",
        extra={
            "event_outbox_id": row.id,
            "notification_id": notification.id,
            "user_id": notification.user_id,
            "company_id": notification.company_id,
        },
    )
