"""
IntakeService — turns a plan + MAC into a hosted checkout URL.
Nothing is written to the queue here; the row is created by the webhook.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from hotspot.core.config import settings
from hotspot.core.errors import GatewayError, ReferenceCollision, ValidationError
from hotspot.plans import Plan, get_plan
from hotspot.services.credentials import generate_reference
from hotspot.services.gateway.client import MonnifyClient
from hotspot.services.queue.store import QueueStore
from hotspot.utils.metrics import checkouts_initialized_total

logger = logging.getLogger(__name__)

DEFAULT_EMAIL = "unknown@example.com"


@dataclass
class CheckoutSession:
    checkout_url: str
    reference: str
    plan: Plan


class IntakeService:
    def __init__(self, db: Session, gateway: MonnifyClient) -> None:
        self.store = QueueStore(db)
        self.gateway = gateway

    def resolve_plan(self, plan: str | None, amount=None) -> Plan:
        plan_obj = get_plan(plan)
        if plan_obj is None:
            raise ValidationError(f"unknown plan {plan!r}")
        if amount is not None and amount != "":
            try:
                as_float = float(amount)
            except (TypeError, ValueError):
                raise ValidationError("amount must be a number")
            if as_float != plan_obj.amount:
                raise ValidationError(
                    f"amount {amount} does not match plan {plan_obj.code} ({plan_obj.amount})"
                )
        return plan_obj

    def new_reference(self) -> str:
        """A fresh reference the queue has never seen; bounded retries."""
        attempts = settings.reference_max_attempts
        for _ in range(attempts):
            reference = generate_reference()
            if not self.store.reference_exists(reference):
                return reference
            logger.warning("reference_collision", extra={"reference": reference})
        raise ReferenceCollision(f"no free reference after {attempts} attempts")

    def start_checkout(
        self,
        plan: str | None,
        amount=None,
        mac: str | None = None,
        email: str | None = None,
        phone: str | None = None,
    ) -> CheckoutSession:
        plan_obj = self.resolve_plan(plan, amount)
        reference = self.new_reference()
        metadata = {"mac_address": mac or "unknown", "plan": plan_obj.code}
        if phone:
            metadata["phone"] = phone
        try:
            checkout = self.gateway.init_checkout(
                reference=reference,
                amount=plan_obj.amount,
                email=email or DEFAULT_EMAIL,
                metadata=metadata,
                description=f"WiFi access {plan_obj.label}",
            )
        except GatewayError as exc:
            checkouts_initialized_total.labels(plan=plan_obj.code, status="error").inc()
            logger.error(
                "checkout_init_failed",
                extra={"reference": reference, "plan": plan_obj.code, "error": str(exc)},
            )
            raise
        checkouts_initialized_total.labels(plan=plan_obj.code, status="ok").inc()
        logger.info("checkout_initialized", extra={"reference": reference, "plan": plan_obj.code})
        return CheckoutSession(checkout_url=checkout.checkout_url, reference=reference, plan=plan_obj)
