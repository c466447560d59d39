"""
Celery beat task: expire jobs whose plan time (plus grace) has run out.
Pending jobs are included: a payment the router never picked up within the
plan duration has no useful future. The router's expired feed cleans up.
"""
import logging
from datetime import datetime
from typing import Callable

import redis
from sqlalchemy.orm import Session

from hotspot.core.celery_app import celery_app
from hotspot.core.config import settings
from hotspot.core.errors import StoreError
from hotspot.db.session import SessionLocal
from hotspot.services.locks import TickLock
from hotspot.services.queue.store import QueueStore
from hotspot.utils.clock import utcnow
from hotspot.utils.metrics import jobs_expired_total

logger = logging.getLogger(__name__)

SWEEP_TIME_LIMIT = 60


def run_sweep(db: Session, clock: Callable[[], datetime] = utcnow) -> int:
    """One sweeper tick. Returns how many jobs moved to expired."""
    expired_ids = QueueStore(db, clock=clock).expire_due(settings.sweep_batch_size)
    if expired_ids:
        jobs_expired_total.inc(len(expired_ids))
        logger.info("expiry_sweep", extra={"count": len(expired_ids)})
    return len(expired_ids)


@celery_app.task(
    name="hotspot.workers.tasks.expiry.sweep_expired",
    time_limit=SWEEP_TIME_LIMIT,
    soft_time_limit=SWEEP_TIME_LIMIT - 5,
)
def sweep_expired() -> dict:
    lock = TickLock("expiry_sweep", ttl_seconds=SWEEP_TIME_LIMIT * 2)
    try:
        if not lock.acquire():
            logger.info("expiry_sweep_skipped_locked")
            return {"ok": True, "skipped": "locked"}
    except redis.RedisError as e:
        logger.warning("expiry_sweep_lock_unavailable", extra={"error": str(e)})
        return {"ok": False, "skipped": "lock_unavailable"}

    db = SessionLocal()
    try:
        count = run_sweep(db)
        return {"ok": True, "expired_count": count}
    except StoreError:
        logger.error("expiry_sweep_store_error")
        return {"ok": False}
    finally:
        db.close()
        try:
            lock.release()
        except redis.RedisError:
            logger.warning("expiry_sweep_lock_release_failed")
