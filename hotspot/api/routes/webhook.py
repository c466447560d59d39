from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from hotspot.api.deps import raw_body
from hotspot.db.session import get_db
from hotspot.schemas.payments import WebhookAck
from hotspot.services.webhook import WebhookService


router = APIRouter(tags=["webhook"])


@router.post("/webhook", response_model=WebhookAck)
def gateway_webhook(
    body: bytes = Depends(raw_body),
    monnify_signature: str | None = Header(default=None),
    signature: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> WebhookAck:
    """
    Settlement webhook. 200 for enqueued, duplicate and ignored events alike;
    400 for bad signature or unknown amount; 503 when the store is down so
    the gateway retries.
    """
    WebhookService(db).handle(body, monnify_signature or signature)
    return WebhookAck(received=True)
