import asyncio
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from app.core.config import env_bool, env_float, env_int
from app.database import SessionLocal
from app.services.outbox_processor import (
    process_outbox_batch,
    release_outbox_lock,
    try_acquire_outbox_lock,
)

logger = logging.getLogger(__name__)


def outbox_worker_enabled() -> bool:
    # Tests drive the processor directly.
    if os.getenv("PYTEST_CURRENT_TEST"):
        return False
    return env_bool("OUTBOX_WORKER_ENABLED", True)


def _dispose_bind(db: Session) -> None:
    try:
        engine = db.get_bind()
        if engine is not None and hasattr(engine, "dispose"):
            engine.dispose()
    except Exception:
        logger.debug("Engine dispose failed", exc_info=True)


async def _run_ticks(*, poll_seconds: float, batch_size: int) -> None:
    while True:
        work_db: Session = SessionLocal()
        try:
            result = process_outbox_batch(
                db=work_db,
                now=datetime.now(timezone.utc),
                batch_size=batch_size,
            )
            work_db.commit()
            if result.processed or result.failed:
                logger.info(
                    "Outbox tick",
                    extra={"processed": result.processed, "failed": result.failed},
                )

        except asyncio.CancelledError:
            raise

        except (OperationalError, DBAPIError):
            work_db.rollback()
            _dispose_bind(work_db)
            logger.exception(
                "Outbox worker tick failed",
                extra={"component": "outbox_worker", "reason": "dbapi_error"},
            )

        except Exception:
            work_db.rollback()
            logger.exception(
                "Outbox worker tick failed",
                extra={"component": "outbox_worker", "reason": "unexpected"},
            )

        finally:
            work_db.close()

        await asyncio.sleep(poll_seconds)


async def outbox_worker_loop(*, poll_seconds: float = 1.0, batch_size: int = 50) -> None:
    """
    Notification delivery loop.

    One process at a time holds the Postgres advisory lock and drains the
    outbox; the others poll for the lock. Database failures are logged and
    retried on the next tick instead of taking the server down.
    """
    logger.info(
        "Outbox worker started",
        extra={"poll_seconds": float(poll_seconds), "batch_size": int(batch_size)},
    )

    while True:
        lock_db: Session = SessionLocal()
        have_lock = False

        try:
            have_lock = try_acquire_outbox_lock(lock_db)
            if not have_lock:
                lock_db.close()
                await asyncio.sleep(poll_seconds)
                continue

            await _run_ticks(poll_seconds=poll_seconds, batch_size=batch_size)

        except asyncio.CancelledError:
            logger.info("Outbox worker cancelled; shutting down")
            raise

        except (OperationalError, DBAPIError):
            logger.exception(
                "Outbox worker lock connection failed",
                extra={"component": "outbox_worker", "reason": "lock_dbapi_error"},
            )
            _dispose_bind(lock_db)
            await asyncio.sleep(poll_seconds)

        except Exception:
            logger.exception(
                "Outbox worker crashed",
                extra={"component": "outbox_worker", "reason": "outer_unexpected"},
            )
            await asyncio.sleep(poll_seconds)

        finally:
            try:
                if have_lock:
                    release_outbox_lock(lock_db)
            except Exception:
                logger.debug("Outbox lock release failed", exc_info=True)
            lock_db.close()


def start_outbox_worker_task() -> Optional[asyncio.Task]:
    if not outbox_worker_enabled():
        logger.info("Outbox worker disabled")
        return None

    poll_seconds = env_float("OUTBOX_POLL_SECONDS", 1.0)
    batch_size = env_int("OUTBOX_BATCH_SIZE", 50)
    return asyncio.create_task(outbox_worker_loop(poll_seconds=poll_seconds, batch_size=batch_size))
