from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from hotspot.api.deps import get_gateway
from hotspot.db.session import get_db
from hotspot.schemas.payments import InitializePaymentRequest, InitializePaymentResponse
from hotspot.services.gateway.client import MonnifyClient
from hotspot.services.intake import IntakeService


router = APIRouter(tags=["payments"])


@router.post("/initialize-payment", response_model=InitializePaymentResponse)
def initialize_payment(
    body: InitializePaymentRequest,
    db: Session = Depends(get_db),
    gateway: MonnifyClient = Depends(get_gateway),
) -> InitializePaymentResponse:
    """Create a hosted checkout for a plan. The queue row is written later, by the webhook."""
    session = IntakeService(db, gateway).start_checkout(
        plan=body.plan,
        amount=body.amount,
        mac=body.mac,
        email=body.email,
        phone=body.phone,
    )
    return InitializePaymentResponse(checkout_url=session.checkout_url, reference=session.reference)


@router.get("/pay/{plan}")
def pay(
    plan: str,
    mac: str | None = Query(None),
    email: str | None = Query(None),
    db: Session = Depends(get_db),
    gateway: MonnifyClient = Depends(get_gateway),
) -> RedirectResponse:
    """Captive-portal shortcut: plan link -> 302 to the gateway's hosted checkout."""
    session = IntakeService(db, gateway).start_checkout(plan=plan, mac=mac, email=email)
    return RedirectResponse(session.checkout_url, status_code=302)
