from __future__ import annotations

import os
import tempfile
from itertools import count
from typing import Any, Optional

# must be set before equitystek.config is imported anywhere
_DB_DIR = tempfile.mkdtemp(prefix="equitystek-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["APP_ENV"] = "test"
os.environ["AUTH_MODE"] = "dev"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["PAYMENT_WEBHOOK_SECRET"] = "whsec_test"
os.environ.pop("PAYMENT_API_KEY", None)

import pytest
from fastapi.testclient import TestClient

from equitystek.clients.payments import PaymentIntent, SetupIntent, get_payment_client
from equitystek.db import Base, SessionLocal, engine
from equitystek.main import create_app


class FakePaymentClient:
    """Records processor calls instead of making them."""

    def __init__(self) -> None:
        self._ids = count(1)
        self.customers: list[dict[str, Any]] = []
        self.intents: list[dict[str, Any]] = []
        self.setup_intents: list[dict[str, Any]] = []
        self.canceled: list[str] = []

    def create_customer(self, *, email: str, name: Optional[str] = None, user_id: Optional[int] = None) -> str:
        cid = f"cus_test_{next(self._ids)}"
        self.customers.append({"id": cid, "email": email, "user_id": user_id})
        return cid

    def create_payment_intent(self, *, amount_cents: int, currency: str, customer_id: str, description: str, metadata=None) -> PaymentIntent:
        pid = f"pi_test_{next(self._ids)}"
        self.intents.append(
            {"id": pid, "amount": amount_cents, "currency": currency, "customer": customer_id, "metadata": metadata or {}}
        )
        return PaymentIntent(
            id=pid,
            client_secret=f"{pid}_secret",
            status="requires_payment_method",
            amount_cents=amount_cents,
            raw={},
        )

    def create_setup_intent(self, *, customer_id: str, metadata=None) -> SetupIntent:
        sid = f"seti_test_{next(self._ids)}"
        self.setup_intents.append({"id": sid, "customer": customer_id})
        return SetupIntent(id=sid, client_secret=f"{sid}_secret", raw={})

    def cancel_subscription_at_period_end(self, subscription_id: str) -> dict[str, Any]:
        self.canceled.append(subscription_id)
        return {"id": subscription_id, "cancel_at_period_end": True}


def headers_for(email: str, role: str = "owner") -> dict[str, str]:
    return {"X-User-Email": email, "X-User-Role": role}


OWNER = headers_for("owner@test.local")
OTHER_OWNER = headers_for("other@test.local")
ADMIN = headers_for("admin@test.local", "admin")
TRADESPERSON = headers_for("sparky@test.local", "tradesperson")


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def app():
    application = create_app()
    application.dependency_overrides[get_payment_client] = lambda: None
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def fake_payments(app) -> FakePaymentClient:
    fake = FakePaymentClient()
    app.dependency_overrides[get_payment_client] = lambda: fake
    return fake


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def make_property(client: TestClient, headers: dict[str, str], **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "address": "12 Oak St",
        "city": "Austin",
        "state": "TX",
        "zip_code": "78701",
        "property_type": "single_family",
        "bedrooms": 3,
        "bathrooms": 2,
        "square_feet": 1600,
        "purchase_price": 450000,
    }
    payload.update(overrides)
    r = client.post("/api/properties", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()
