"""
WebhookService — settlement events from the gateway into the provisioning queue.

The signature is checked over the raw request bytes before anything is
parsed. Idempotency rides on reference uniqueness: a repeated delivery finds
the row already there and is acknowledged without touching it.
"""
import json
import logging
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from hotspot.core.config import settings
from hotspot.core.errors import AuthError, DuplicateReference, UsernameCollision, ValidationError
from hotspot.plans import Plan, get_plan, plan_for_amount
from hotspot.services.credentials import generate_credential, is_valid_reference
from hotspot.services.gateway.signature import verify_signature
from hotspot.services.queue.store import Customer, QueueStore
from hotspot.utils.metrics import jobs_enqueued_total, webhooks_received_total

logger = logging.getLogger(__name__)

SUCCESS_EVENT = "SUCCESSFUL_TRANSACTION"


class WebhookOutcome(str, Enum):
    ENQUEUED = "enqueued"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


def _metadata(event_data: dict[str, Any]) -> dict[str, Any]:
    meta = event_data.get("metaData") or event_data.get("metadata") or {}
    return meta if isinstance(meta, dict) else {}


def resolve_plan(event_data: dict[str, Any]) -> Plan:
    """metaData.plan wins; otherwise the amount paid must match a plan price exactly."""
    meta = _metadata(event_data)
    plan = get_plan(meta.get("plan"))
    if plan is not None:
        return plan
    amount = event_data.get("amountPaid", event_data.get("amount"))
    plan = plan_for_amount(amount)
    if plan is None:
        raise ValidationError(f"invalid amount {amount!r}")
    return plan


class WebhookService:
    def __init__(self, db: Session, secret: str | None = None) -> None:
        self.store = QueueStore(db)
        self.secret = secret if secret is not None else settings.monnify_secret_key

    def authenticate(self, body: bytes, signature: str | None) -> None:
        if not verify_signature(body, signature, self.secret):
            webhooks_received_total.labels(outcome="rejected").inc()
            logger.warning("webhook_bad_signature", extra={"error": "signature mismatch"})
            raise AuthError("invalid signature", status_code=400)

    @staticmethod
    def parse(body: bytes) -> dict[str, Any]:
        try:
            event = json.loads(body)
        except (UnicodeDecodeError, ValueError):
            raise ValidationError("body is not valid JSON")
        if not isinstance(event, dict):
            raise ValidationError("body must be a JSON object")
        return event

    def handle(self, body: bytes, signature: str | None) -> WebhookOutcome:
        self.authenticate(body, signature)
        event = self.parse(body)

        event_type = event.get("eventType")
        if event_type != SUCCESS_EVENT:
            webhooks_received_total.labels(outcome="ignored").inc()
            logger.info("webhook_ignored", extra={"event_type": event_type})
            return WebhookOutcome.IGNORED

        event_data = event.get("eventData")
        if not isinstance(event_data, dict):
            raise ValidationError("eventData missing")
        reference = event_data.get("paymentReference")
        if not isinstance(reference, str) or not is_valid_reference(reference):
            raise ValidationError("paymentReference missing or malformed")

        try:
            plan = resolve_plan(event_data)
        except ValidationError:
            webhooks_received_total.labels(outcome="rejected").inc()
            logger.error(
                "webhook_invalid_amount",
                extra={"reference": reference, "amount": event_data.get("amountPaid")},
            )
            raise

        return self._enqueue(reference, plan, event_data)

    def _enqueue(self, reference: str, plan: Plan, event_data: dict[str, Any]) -> WebhookOutcome:
        meta = _metadata(event_data)
        customer_raw = event_data.get("customer") if isinstance(event_data.get("customer"), dict) else {}
        customer = Customer(
            email=customer_raw.get("email") or None,
            phone=customer_raw.get("phoneNumber") or customer_raw.get("phone") or meta.get("phone") or None,
        )
        mac = meta.get("mac_address") or meta.get("mac") or "unknown"

        attempts = settings.credential_max_attempts
        for attempt in range(1, attempts + 1):
            try:
                result = self.store.enqueue(
                    reference=reference,
                    plan=plan.code,
                    credential=generate_credential(),
                    mac=str(mac),
                    customer=customer,
                    amount=plan.amount,
                )
            except DuplicateReference:
                webhooks_received_total.labels(outcome="duplicate").inc()
                logger.info("webhook_duplicate", extra={"reference": reference})
                return WebhookOutcome.DUPLICATE
            except UsernameCollision:
                logger.warning("username_collision", extra={"reference": reference, "count": attempt})
                if attempt == attempts:
                    raise
                continue
            webhooks_received_total.labels(outcome="enqueued").inc()
            jobs_enqueued_total.labels(plan=plan.code).inc()
            logger.info(
                "webhook_enqueued",
                extra={"reference": reference, "plan": plan.code, "job_id": result.job.id},
            )
            return WebhookOutcome.ENQUEUED
        raise UsernameCollision("credential generation exhausted")
