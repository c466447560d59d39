"""
QueueStore — the durable provisioning queue.

Every public method is one transaction: it commits before returning or rolls
back and raises. Row locks (FOR UPDATE / SKIP LOCKED) serialize writers on
PostgreSQL; sqlite ignores them, which is fine for a single test connection.
Reference uniqueness and the transition table are enforced here, not by
callers.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterator

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hotspot.core.config import settings
from hotspot.core.errors import (
    DuplicateReference,
    HotspotError,
    JobNotFound,
    StoreError,
    UsernameCollision,
    ValidationError,
    WrongState,
)
from hotspot.models.payment_job import JobStatus, PaymentJob
from hotspot.plans import get_plan
from hotspot.services.credentials import Credential
from hotspot.services.queue.transitions import ensure_transition
from hotspot.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Customer:
    email: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class EnqueueResult:
    inserted: bool
    job: PaymentJob


class QueueStore:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow) -> None:
        self.db = db
        self._clock = clock

    def _now(self) -> datetime:
        return as_utc(self._clock())

    def _default_grace(self) -> timedelta:
        return timedelta(minutes=settings.expiry_grace_minutes)

    # ------------------------------------------------------------------
    # Transaction helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except HotspotError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("store_transaction_failed")
            raise StoreError("store operation failed") from exc

    @contextmanager
    def _reading(self) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("store_read_failed")
            raise StoreError("store read failed") from exc

    def _locked(self, job_id: int) -> PaymentJob | None:
        return (
            self.db.query(PaymentJob)
            .filter(PaymentJob.id == job_id)
            .with_for_update()
            .one_or_none()
        )

    @staticmethod
    def _touch_sync(job: PaymentJob, now: datetime) -> None:
        last = as_utc(job.last_sync)
        if last is None or last < now:
            job.last_sync = now

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, job_id: int) -> PaymentJob | None:
        with self._reading():
            return self.db.query(PaymentJob).filter(PaymentJob.id == job_id).one_or_none()

    def get_by_reference(self, reference: str) -> PaymentJob | None:
        with self._reading():
            return (
                self.db.query(PaymentJob)
                .filter(PaymentJob.reference == reference)
                .one_or_none()
            )

    def reference_exists(self, reference: str) -> bool:
        with self._reading():
            return (
                self.db.query(PaymentJob.id)
                .filter(PaymentJob.reference == reference)
                .first()
                is not None
            )

    def _username_exists(self, username: str) -> bool:
        with self._reading():
            return (
                self.db.query(PaymentJob.id)
                .filter(PaymentJob.username == username)
                .first()
                is not None
            )

    # ------------------------------------------------------------------
    # Enqueue
    # ------------------------------------------------------------------

    def enqueue(
        self,
        reference: str,
        plan: str,
        credential: Credential,
        mac: str | None = None,
        customer: Customer | None = None,
        amount: int | None = None,
    ) -> EnqueueResult:
        """
        Insert a pending job. expires_at is fixed here: the session clock starts
        when the customer pays, not when the router picks the job up.
        """
        plan_obj = get_plan(plan)
        if plan_obj is None:
            raise ValidationError(f"unknown plan {plan!r}")
        if self.reference_exists(reference):
            raise DuplicateReference(f"reference {reference} already queued")

        customer = customer or Customer()
        now = self._now()
        job = PaymentJob(
            reference=reference,
            plan=plan_obj.code,
            amount=amount if amount is not None else plan_obj.amount,
            username=credential.username,
            password=credential.password,
            mac=mac or "unknown",
            customer_email=customer.email,
            customer_phone=customer.phone,
            status=JobStatus.PENDING,
            created_at=now,
            expires_at=now + plan_obj.duration,
        )
        self.db.add(job)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            # Lost a race with a concurrent delivery, or a username clash
            if self.reference_exists(reference):
                raise DuplicateReference(f"reference {reference} already queued") from exc
            if self._username_exists(credential.username):
                raise UsernameCollision(credential.username) from exc
            logger.exception("enqueue_integrity_error", extra={"reference": reference})
            raise StoreError("enqueue failed") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("enqueue_failed", extra={"reference": reference})
            raise StoreError("enqueue failed") from exc
        self.db.refresh(job)
        return EnqueueResult(inserted=True, job=job)

    # ------------------------------------------------------------------
    # Router handoff
    # ------------------------------------------------------------------

    def claim_pending(self, limit: int | None = None) -> list[PaymentJob]:
        """Oldest pending jobs first. Read-only: the router's ack is the claim."""
        limit = limit if limit is not None else settings.pending_batch_size
        with self._reading():
            return (
                self.db.query(PaymentJob)
                .filter(PaymentJob.status == JobStatus.PENDING)
                .order_by(PaymentJob.created_at.asc(), PaymentJob.id.asc())
                .limit(limit)
                .all()
            )

    def mark_processed(self, job_id: int) -> PaymentJob:
        with self._transaction():
            job = self._locked(job_id)
            if job is None:
                raise JobNotFound(f"job {job_id} not found")
            now = self._now()
            if job.status != JobStatus.PROCESSED:
                if job.status != JobStatus.PENDING:
                    # suspended jobs are resumed by an operator, never by the router
                    raise WrongState(job.status, JobStatus.PROCESSED)
                ensure_transition(job.status, JobStatus.PROCESSED)
                job.status = JobStatus.PROCESSED
                job.processed_at = now
            self._touch_sync(job, now)
        return job

    def claim_expirable(
        self, limit: int | None = None, grace: timedelta | None = None
    ) -> list[PaymentJob]:
        """Processed jobs whose expires_at + grace has passed."""
        limit = limit if limit is not None else settings.expired_batch_size
        grace = grace if grace is not None else self._default_grace()
        cutoff = self._now() - grace
        with self._reading():
            return (
                self.db.query(PaymentJob)
                .filter(
                    PaymentJob.status == JobStatus.PROCESSED,
                    PaymentJob.expires_at <= cutoff,
                )
                .order_by(PaymentJob.expires_at.asc())
                .limit(limit)
                .all()
            )

    def mark_expired(self, job_id: int) -> PaymentJob:
        with self._transaction():
            job = self._locked(job_id)
            if job is None:
                raise JobNotFound(f"job {job_id} not found")
            if job.status != JobStatus.EXPIRED:
                ensure_transition(job.status, JobStatus.EXPIRED)
                job.status = JobStatus.EXPIRED
        return job

    def revocation_feed(
        self, limit: int | None = None, grace: timedelta | None = None
    ) -> list[PaymentJob]:
        """
        Everything the router still has to delete: processed jobs past
        expires_at + grace, plus expired jobs whose revocation was never acked.
        """
        limit = limit if limit is not None else settings.expired_batch_size
        grace = grace if grace is not None else self._default_grace()
        cutoff = self._now() - grace
        with self._reading():
            return (
                self.db.query(PaymentJob)
                .filter(
                    or_(
                        and_(
                            PaymentJob.status == JobStatus.PROCESSED,
                            PaymentJob.expires_at <= cutoff,
                        ),
                        and_(
                            PaymentJob.status == JobStatus.EXPIRED,
                            PaymentJob.revoked_at.is_(None),
                        ),
                    )
                )
                .order_by(PaymentJob.expires_at.asc())
                .limit(limit)
                .all()
            )

    def acknowledge_revocation(self, job_id: int) -> PaymentJob | None:
        """Router removed the user: expire if needed and stamp revoked_at once."""
        with self._transaction():
            job = self._locked(job_id)
            if job is None:
                return None
            now = self._now()
            if job.status != JobStatus.EXPIRED:
                ensure_transition(job.status, JobStatus.EXPIRED)
                job.status = JobStatus.EXPIRED
            if job.revoked_at is None:
                job.revoked_at = now
            self._touch_sync(job, now)
        return job

    # ------------------------------------------------------------------
    # Sweeper / retention
    # ------------------------------------------------------------------

    def expire_due(self, limit: int | None = None, grace: timedelta | None = None) -> list[int]:
        """
        Move pending and processed jobs past expires_at + grace to expired.
        Returns the ids that changed.
        """
        limit = limit if limit is not None else settings.sweep_batch_size
        grace = grace if grace is not None else self._default_grace()
        cutoff = self._now() - grace
        expired_ids: list[int] = []
        with self._transaction():
            due = (
                self.db.query(PaymentJob)
                .filter(
                    PaymentJob.status.in_([JobStatus.PENDING, JobStatus.PROCESSED]),
                    PaymentJob.expires_at <= cutoff,
                )
                .order_by(PaymentJob.expires_at.asc())
                .limit(limit)
                .with_for_update(skip_locked=True)
                .all()
            )
            for job in due:
                ensure_transition(job.status, JobStatus.EXPIRED)
                job.status = JobStatus.EXPIRED
                expired_ids.append(job.id)
        return expired_ids

    def purge_revoked(self, before: datetime) -> int:
        with self._transaction():
            deleted = (
                self.db.query(PaymentJob)
                .filter(
                    PaymentJob.status == JobStatus.EXPIRED,
                    PaymentJob.revoked_at.isnot(None),
                    PaymentJob.revoked_at <= before,
                )
                .delete(synchronize_session=False)
            )
        return deleted

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def suspend(self, job_id: int) -> PaymentJob:
        with self._transaction():
            job = self._locked(job_id)
            if job is None:
                raise JobNotFound(f"job {job_id} not found")
            if job.status != JobStatus.SUSPENDED:
                ensure_transition(job.status, JobStatus.SUSPENDED)
                job.status = JobStatus.SUSPENDED
        return job

    def resume(self, job_id: int) -> PaymentJob:
        with self._transaction():
            job = self._locked(job_id)
            if job is None:
                raise JobNotFound(f"job {job_id} not found")
            if job.status != JobStatus.PROCESSED:
                if job.status != JobStatus.SUSPENDED:
                    raise WrongState(job.status, JobStatus.PROCESSED)
                ensure_transition(job.status, JobStatus.PROCESSED)
                job.status = JobStatus.PROCESSED
        return job

    def delete(self, job_id: int) -> None:
        with self._transaction():
            job = self._locked(job_id)
            if job is None:
                raise JobNotFound(f"job {job_id} not found")
            self.db.delete(job)

    def list_jobs(
        self, status: str | None = None, limit: int = 50, offset: int = 0
    ) -> tuple[int, list[PaymentJob]]:
        with self._reading():
            q = self.db.query(PaymentJob)
            if status:
                q = q.filter(PaymentJob.status == status)
            total = q.count()
            items = q.order_by(PaymentJob.created_at.desc()).offset(offset).limit(limit).all()
        return total, items

    def counts_by_status(self) -> dict[str, int]:
        with self._reading():
            rows = (
                self.db.query(PaymentJob.status, func.count(PaymentJob.id))
                .group_by(PaymentJob.status)
                .all()
            )
        counts = {status: 0 for status in JobStatus.ALL}
        for status, count in rows:
            counts[status] = count
        return counts
