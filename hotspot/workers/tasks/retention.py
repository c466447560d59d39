"""
Celery beat task: delete expired jobs the router revoked more than
RETENTION_DAYS ago.
"""
import logging
from datetime import timedelta

from hotspot.core.celery_app import celery_app
from hotspot.core.config import settings
from hotspot.core.errors import StoreError
from hotspot.db.session import SessionLocal
from hotspot.services.queue.store import QueueStore
from hotspot.utils.clock import utcnow

logger = logging.getLogger(__name__)


@celery_app.task(
    name="hotspot.workers.tasks.retention.purge_revoked",
    time_limit=300,
    soft_time_limit=290,
)
def purge_revoked() -> dict:
    db = SessionLocal()
    try:
        cutoff = utcnow() - timedelta(days=settings.retention_days)
        deleted = QueueStore(db).purge_revoked(cutoff)
        if deleted:
            logger.info("retention_purge", extra={"count": deleted})
        return {"ok": True, "deleted": deleted}
    except StoreError:
        logger.error("retention_purge_store_error")
        return {"ok": False}
    finally:
        db.close()
