"""
Shared fixtures. Environment is seeded before anything imports
hotspot.core.config, so Settings() validates without a real .env.
"""
import hashlib
import hmac
import json
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("CELERY_BROKER_URL", "redis://localhost:6379/15")
os.environ.setdefault("CELERY_RESULT_BACKEND", "redis://localhost:6379/15")
os.environ.setdefault("MONNIFY_API_KEY", "MK_TEST_APIKEY")
os.environ.setdefault("MONNIFY_SECRET_KEY", "test-monnify-secret")
os.environ.setdefault("MONNIFY_CONTRACT_CODE", "1234567890")
os.environ.setdefault("MONNIFY_BASE_URL", "https://gateway.test")
os.environ.setdefault("ROUTER_API_KEY", "router-test-key-0123456789")
os.environ.setdefault("ADMIN_API_KEY", "admin-test-key")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROUTER_KEY = os.environ["ROUTER_API_KEY"]
ADMIN_KEY = os.environ["ADMIN_API_KEY"]
WEBHOOK_SECRET = os.environ["MONNIFY_SECRET_KEY"]


class FakeClock:
    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


def webhook_body(
    reference: str,
    amount=2400,
    plan: str | None = "7d",
    mac: str = "AA:BB",
    event_type: str = "SUCCESSFUL_TRANSACTION",
    email: str = "x@y.com",
) -> bytes:
    meta = {"mac_address": mac}
    if plan is not None:
        meta["plan"] = plan
    event = {
        "eventType": event_type,
        "eventData": {
            "paymentReference": reference,
            "amountPaid": amount,
            "paymentStatus": "PAID",
            "customer": {"email": email, "name": "Hotspot customer"},
            "metaData": meta,
        },
    }
    return json.dumps(event, separators=(",", ":")).encode()


@pytest.fixture
def engine():
    from hotspot.db.base import Base
    from hotspot.models import payment_job  # noqa: F401

    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    from hotspot.services.gateway.client import Checkout, MonnifyClient

    gw = MagicMock(spec=MonnifyClient)
    gw.init_checkout.side_effect = lambda reference, **kwargs: Checkout(
        checkout_url=f"https://checkout.gateway.test/{reference}",
        payment_reference=reference,
        transaction_reference=f"MNFY|{reference}",
    )
    return gw


@pytest.fixture
def client(session_factory, gateway):
    from fastapi.testclient import TestClient

    from hotspot.api.deps import get_gateway
    from hotspot.db.session import get_db
    from hotspot.main import app

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def router_headers():
    return {"x-api-key": ROUTER_KEY}


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}
