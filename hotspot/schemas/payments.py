from pydantic import BaseModel


class InitializePaymentRequest(BaseModel):
    plan: str
    amount: float | None = None
    email: str | None = None
    mac: str | None = None
    phone: str | None = None


class InitializePaymentResponse(BaseModel):
    checkout_url: str
    reference: str


class WebhookAck(BaseModel):
    received: bool = True
