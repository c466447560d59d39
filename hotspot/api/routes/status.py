from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hotspot.db.session import get_db
from hotspot.services.status import StatusService


router = APIRouter(tags=["status"])


@router.get("/status")
@router.get("/api/check-status", include_in_schema=False)
def payment_status(ref: str | None = Query(None), db: Session = Depends(get_db)) -> dict:
    """Polled by the customer's success page until credentials are ready."""
    return StatusService(db).resolve(ref)
