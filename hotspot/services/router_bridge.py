"""
RouterBridge — the pull interface for the edge router.

The router polls two plain-text feeds and acks each line it acted on. Lines
are pipe-delimited because the consumer is a constrained router script:

    pending:  username|password|plan|mac|expires_at_iso|id
    expired:  username|mac|expires_at_iso|id
"""
import hmac
import logging
import re

from sqlalchemy.orm import Session

from hotspot.core.config import settings
from hotspot.core.errors import AuthError, JobNotFound, ValidationError
from hotspot.models.payment_job import PaymentJob
from hotspot.services.queue.store import QueueStore
from hotspot.utils.clock import to_iso
from hotspot.utils.metrics import (
    pending_queue_length,
    router_acks_total,
    router_auth_failures_total,
)

logger = logging.getLogger(__name__)

_TRAILING_ID = re.compile(r"(\d+)\s*$")


def check_router_key(provided: str | None, expected: str | None = None) -> None:
    expected = expected if expected is not None else settings.router_api_key
    if not provided or not expected or not hmac.compare_digest(
        provided.encode("utf-8"), expected.encode("utf-8")
    ):
        router_auth_failures_total.inc()
        logger.warning("router_bad_api_key")
        raise AuthError("forbidden")


def parse_job_id(token: str) -> int:
    """Accept a bare id or the whole pipe tuple the router received; the id is the last field."""
    match = _TRAILING_ID.search(token or "")
    if match is None:
        raise ValidationError("no job id in ack path")
    return int(match.group(1))


def _field(value) -> str:
    text = "" if value is None else str(value)
    return text.replace("|", "-").replace("\r", " ").replace("\n", " ")


def pending_line(job: PaymentJob) -> str:
    return "|".join(
        _field(v)
        for v in (job.username, job.password, job.plan, job.mac, to_iso(job.expires_at), job.id)
    )


def expired_line(job: PaymentJob) -> str:
    return "|".join(_field(v) for v in (job.username, job.mac, to_iso(job.expires_at), job.id))


class RouterBridge:
    def __init__(self, db: Session) -> None:
        self.store = QueueStore(db)

    def pending_feed(self) -> str:
        jobs = self.store.claim_pending(settings.pending_batch_size)
        pending_queue_length.set(len(jobs))
        if jobs:
            logger.info("router_pending_feed", extra={"count": len(jobs)})
        return "\n".join(pending_line(job) for job in jobs)

    def ack_processed(self, token: str) -> PaymentJob:
        job_id = parse_job_id(token)
        try:
            job = self.store.mark_processed(job_id)
        except JobNotFound:
            router_acks_total.labels(kind="processed", result="not_found").inc()
            raise
        except Exception:
            router_acks_total.labels(kind="processed", result="error").inc()
            raise
        router_acks_total.labels(kind="processed", result="ok").inc()
        logger.info("router_ack_processed", extra={"job_id": job_id, "reference": job.reference})
        return job

    def expired_feed(self) -> str:
        jobs = self.store.revocation_feed(settings.expired_batch_size)
        if jobs:
            logger.info("router_expired_feed", extra={"count": len(jobs)})
        return "\n".join(expired_line(job) for job in jobs)

    def ack_expired(self, token: str) -> bool:
        """Silent on unknown or already-revoked ids: the router may replay acks."""
        job_id = parse_job_id(token)
        job = self.store.acknowledge_revocation(job_id)
        result = "ok" if job is not None else "not_found"
        router_acks_total.labels(kind="expired", result=result).inc()
        logger.info("router_ack_expired", extra={"job_id": job_id, "status": result})
        return True
