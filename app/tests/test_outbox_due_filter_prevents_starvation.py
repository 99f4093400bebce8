from datetime import datetime, timedelta, timezone

from app.database import SessionLocal
from app.models.event_outbox import EventOutbox
from app.services.notification_service import NOTIFICATION_REQUESTED
from app.services.outbox_processor import process_outbox_batch


def test_backing_off_rows_do_not_fill_the_batch():
    """
    The oldest unprocessed rows are still backing off and the batch only
    holds one row. A younger row that is already due must still be picked up.
    """
    db = SessionLocal()
    try:
        now = datetime.now(timezone.utc)

        waiting = []
        for i in range(3):
            row = EventOutbox(
                company_id=1,
                event_type=NOTIFICATION_REQUESTED,
                idempotency_key=f"backoff-{i}",
                payload={},
                processed=False,
                retry_count=4,
            )
            db.add(row)
            db.flush()
            row.created_at = now
            waiting.append(row)

        ready = EventOutbox(
            company_id=1,
            event_type=NOTIFICATION_REQUESTED,
            idempotency_key="ready",
            payload={},
            processed=False,
            retry_count=0,
        )
        db.add(ready)
        db.flush()
        ready.created_at = now - timedelta(seconds=30)
        db.commit()

        handled = []
        result = process_outbox_batch(
            db=db,
            now=now,
            batch_size=1,
            handlers={NOTIFICATION_REQUESTED: lambda row, _db: handled.append(row.idempotency_key)},
        )
        db.commit()

        assert (result.processed, result.failed) == (1, 0)
        assert handled == ["ready"]

        for row in waiting:
            db.refresh(row)
            assert row.processed is False
        db.refresh(ready)
        assert ready.processed is True
    finally:
        db.close()
