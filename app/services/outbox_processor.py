import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from sqlalchemy import case, func, text
from sqlalchemy.orm import Session

from app.database import SessionLocal, is_postgres
from app.models.event_outbox import EventOutbox

logger = logging.getLogger(__name__)

_LOCK_KEYS = (7100, 7101)


@dataclass(frozen=True)
class OutboxProcessResult:
    processed: int
    failed: int


OutboxHandler = Callable[[EventOutbox, Session], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _retry_wait(retry_count: int) -> timedelta:
    """Exponential backoff: 0s before the first attempt, then 2s, 4s, 8s... capped at 60s."""
    n = int(retry_count) if retry_count is not None else 0
    if n <= 0:
        return timedelta(seconds=0)

    seconds = 2**n
    if seconds > 60:
        seconds = 60
    return timedelta(seconds=seconds)


def _to_utc_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _due(created_at: datetime, retry_count: int, now: datetime) -> bool:
    """Naive datetimes are treated as UTC."""
    return _to_utc_aware(now) >= (_to_utc_aware(created_at) + _retry_wait(retry_count))


def _default_handlers() -> Dict[str, OutboxHandler]:
    from app.services.outbox_handlers import handle_notification_requested
    from app.services.notification_service import NOTIFICATION_REQUESTED

    return {NOTIFICATION_REQUESTED: handle_notification_requested}


def _is_due_clause(now: datetime):
    """
    SQL-side due filter (Postgres only).

    Applied before LIMIT so rows still backing off don't starve due rows.
    due_at := created_at + least(60, 2^retry_count) seconds, or created_at when retry_count <= 0
    """
    retry_count = func.coalesce(EventOutbox.retry_count, 0)

    wait_seconds = case(
        (retry_count <= 0, 0),
        else_=func.least(60, func.power(2, retry_count)),
    )

    due_at = EventOutbox.created_at + (wait_seconds * text("interval '1 second'"))
    return due_at <= now


def process_outbox_batch(
    *,
    db: Optional[Session] = None,
    now: Optional[datetime] = None,
    batch_size: int = 50,
    max_retries: int = 10,
    handlers: Optional[Dict[str, OutboxHandler]] = None,
) -> OutboxProcessResult:
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    if now is None:
        now = _utcnow()

    if handlers is None:
        handlers = _default_handlers()

    processed = 0
    failed = 0

    try:
        q = db.query(EventOutbox).filter(EventOutbox.processed.is_(False)).order_by(EventOutbox.id.asc())
        if is_postgres(db):
            rows = q.filter(_is_due_clause(now)).with_for_update(skip_locked=True).limit(int(batch_size)).all()
        else:
            # No interval arithmetic or row locks here; filter due rows before applying the batch limit.
            rows = [r for r in q.all() if _due(r.created_at, r.retry_count, now)][: int(batch_size)]

        for row in rows:
            if not _due(row.created_at, row.retry_count, now):
                continue

            handler = handlers.get(row.event_type)

            try:
                if handler is None:
                    raise ValueError(f"Unknown event_type: {row.event_type}")

                with db.begin_nested():
                    handler(row, db)

                row.processed = True
                row.processed_at = now
                row.last_error = None
                db.flush()
                processed += 1

            except Exception as exc:
                row.retry_count = int(row.retry_count or 0) + 1
                row.last_error = f"{type(exc).__name__}: {exc}"[:500]

                if int(row.retry_count) >= int(max_retries):
                    row.processed = True
                    row.processed_at = now

                db.flush()
                failed += 1
                logger.exception(
                    "Outbox row processing failed",
                    extra={
                        "event_outbox_id": row.id,
                        "event_type": row.event_type,
                        "retry_count": int(row.retry_count),
                        "max_retries": int(max_retries),
                    },
                )

        if owns_db:
            db.commit()

        return OutboxProcessResult(processed=processed, failed=failed)

    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


def try_acquire_outbox_lock(db: Session) -> bool:
    if not is_postgres(db):
        return True
    res = db.execute(text("select pg_try_advisory_lock(:a, :b)"), {"a": _LOCK_KEYS[0], "b": _LOCK_KEYS[1]}).scalar()
    return bool(res)


def release_outbox_lock(db: Session) -> None:
    if not is_postgres(db):
        return
    db.execute(text("select pg_advisory_unlock(:a, :b)"), {"a": _LOCK_KEYS[0], "b": _LOCK_KEYS[1]})
