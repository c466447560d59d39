"""
Customer-facing status poll. The reference is the capability: whoever holds
it gets the credentials once the router has provisioned them.
"""
from typing import Any

from sqlalchemy.orm import Session

from hotspot.models.payment_job import JobStatus
from hotspot.services.queue.store import QueueStore
from hotspot.utils.clock import to_iso


class StatusService:
    def __init__(self, db: Session) -> None:
        self.store = QueueStore(db)

    def resolve(self, reference: str | None) -> dict[str, Any]:
        reference = (reference or "").strip()
        if not reference:
            return {"ready": False, "message": "no reference"}

        job = self.store.get_by_reference(reference)
        if job is None:
            return {"ready": False, "found": False, "message": "waiting for payment confirmation"}

        if job.status == JobStatus.PROCESSED and job.username and job.password:
            return {
                "ready": True,
                "username": job.username,
                "password": job.password,
                "plan": job.plan,
                "expires_at": to_iso(job.expires_at),
            }
        return {"ready": False, "found": True, "status": job.status}
