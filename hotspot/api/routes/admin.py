"""
Operator API: inspect the queue, suspend/resume a session, delete a row.
Guarded by the X-Admin-Key header.
"""
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hotspot.api.deps import require_admin
from hotspot.core.errors import JobNotFound, ValidationError
from hotspot.db.session import get_db
from hotspot.models.payment_job import JobStatus
from hotspot.schemas.jobs import JobList, JobOut
from hotspot.services.queue.store import QueueStore

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


@router.get("/stats")
def stats(db: Session = Depends(get_db)) -> dict:
    return {"by_status": QueueStore(db).counts_by_status()}


@router.get("/jobs", response_model=JobList)
def list_jobs(
    db: Session = Depends(get_db),
    status: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    if status and status not in JobStatus.ALL:
        raise ValidationError(f"unknown status {status!r}")
    total, items = QueueStore(db).list_jobs(status=status, limit=limit, offset=offset)
    return JobList(total=total, items=[JobOut.model_validate(j) for j in items])


@router.get("/jobs/{job_id}", response_model=JobOut)
def get_job(job_id: int, db: Session = Depends(get_db)):
    job = QueueStore(db).get(job_id)
    if job is None:
        raise JobNotFound(f"job {job_id} not found")
    return JobOut.model_validate(job)


@router.post("/jobs/{job_id}/suspend", response_model=JobOut)
def suspend_job(job_id: int, db: Session = Depends(get_db)):
    job = QueueStore(db).suspend(job_id)
    logger.info("admin_suspend", extra={"job_id": job_id})
    return JobOut.model_validate(job)


@router.post("/jobs/{job_id}/resume", response_model=JobOut)
def resume_job(job_id: int, db: Session = Depends(get_db)):
    job = QueueStore(db).resume(job_id)
    logger.info("admin_resume", extra={"job_id": job_id})
    return JobOut.model_validate(job)


@router.delete("/jobs/{job_id}")
def delete_job(job_id: int, db: Session = Depends(get_db)) -> dict:
    QueueStore(db).delete(job_id)
    logger.info("admin_delete", extra={"job_id": job_id})
    return {"deleted": True}
