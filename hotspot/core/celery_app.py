"""
Celery application: broker and result backend from settings.
Periodic tasks live in hotspot.workers.tasks (expiry sweep, retention).
"""
from celery import Celery
from celery.schedules import crontab

from hotspot.core.config import settings

celery_app = Celery(
    "hotspot",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "hotspot.workers.tasks.expiry",
        "hotspot.workers.tasks.retention",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    result_expires=3600,
    beat_schedule={
        "sweep-expired-jobs": {
            "task": "hotspot.workers.tasks.expiry.sweep_expired",
            "schedule": float(settings.sweep_interval_seconds),
            # A tick that waited longer than one interval is stale; the next one covers it
            "options": {"expires": float(settings.sweep_interval_seconds)},
        },
        "purge-revoked-jobs": {
            "task": "hotspot.workers.tasks.retention.purge_revoked",
            "schedule": crontab(hour=3, minute=30),
        },
    },
)
