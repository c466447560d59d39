from datetime import datetime

from pydantic import BaseModel, ConfigDict


class JobOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    reference: str
    plan: str
    amount: int
    username: str
    mac: str
    customer_email: str | None
    customer_phone: str | None
    status: str
    created_at: datetime
    expires_at: datetime
    processed_at: datetime | None
    last_sync: datetime | None
    revoked_at: datetime | None


class JobList(BaseModel):
    total: int
    items: list[JobOut]
