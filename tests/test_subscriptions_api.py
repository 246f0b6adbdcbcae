from __future__ import annotations

import inspect
import json
import re
import time
from decimal import Decimal

from sqlalchemy import select

from conftest import OTHER_OWNER, OWNER, make_property
from equitystek.domain.webhook_signature import compute_signature
from equitystek.models import AppUser, Receipt, Subscription, SubscriptionPlan
from equitystek.routers.subscriptions import webhook


def _plans(client):
    return {p["code"]: p for p in client.get("/api/subscriptions/plans").json()}


def _signed(event: dict, secret: str = "whsec_test") -> tuple[bytes, dict[str, str]]:
    body = json.dumps(event).encode()
    ts = int(time.time())
    return body, {"Stripe-Signature": f"t={ts},v1={compute_signature(body, ts, secret)}", "Content-Type": "application/json"}


def test_default_plans_are_listed_publicly(client):
    plans = client.get("/api/subscriptions/plans").json()
    assert [p["name"] for p in plans] == ["Basic", "Professional", "Enterprise"]
    assert plans[0]["base_price"] == 9.99
    assert plans[0]["price_per_property"] == 4.99
    assert plans[0]["max_properties"] == 3
    assert plans[2]["max_properties"] is None


def test_calculate_price(client, db):
    plan = SubscriptionPlan(
        code="flat",
        name="Flat",
        description="",
        base_price=Decimal("15"),
        price_per_property=Decimal("5"),
        max_properties=2,
        features=[],
    )
    db.add(plan)
    db.commit()

    r = client.get("/api/subscriptions/calculate-price", params={"plan_id": plan.id, "property_count": 3}, headers=OWNER)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["total_price"] == 25.0
    assert body["additional_properties"] == 2
    assert body["within_allowance"] is False

    assert client.get("/api/subscriptions/calculate-price", params={"plan_id": 9999, "property_count": 1}, headers=OWNER).status_code == 404
    assert client.get("/api/subscriptions/calculate-price", params={"plan_id": plan.id, "property_count": -1}, headers=OWNER).status_code == 400


def test_price_estimate_covers_every_plan(client):
    r = client.get("/api/subscriptions/price-estimate", params={"property_count": 4})
    assert r.status_code == 200
    totals = {q["plan_name"]: q["total_price"] for q in r.json()}
    assert totals == {"Basic": 24.96, "Professional": 31.96, "Enterprise": 58.96}


def test_local_subscription_without_processor(client):
    make_property(client, OWNER)
    make_property(client, OWNER, address="2 Oak St")
    plans = _plans(client)

    r = client.post("/api/subscriptions", json={"plan_id": plans["basic"]["id"]}, headers=OWNER)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["client_secret"] is None
    assert body["receipt_id"] is None
    sub = body["subscription"]
    assert sub["status"] == "active"
    assert sub["property_count"] == 2
    assert sub["current_price"] == 14.98
    assert sub["next_payment_date"] is not None
    assert client.get("/api/receipts", headers=OWNER).json() == []


def test_current_subscription_missing_is_404(client):
    assert client.get("/api/subscriptions/current", headers=OWNER).status_code == 404


def test_processor_checkout_creates_pending_receipt(client, fake_payments):
    make_property(client, OWNER)
    plans = _plans(client)

    r = client.post("/api/subscriptions", json={"plan_id": plans["professional"]["id"]}, headers=OWNER)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["client_secret"].endswith("_secret")
    assert fake_payments.intents[0]["amount"] == 1999
    assert fake_payments.intents[0]["metadata"]["subscription_id"] == body["subscription"]["id"]

    receipts = client.get("/api/receipts", headers=OWNER).json()
    assert len(receipts) == 1
    assert receipts[0]["id"] == body["receipt_id"]
    assert receipts[0]["payment_status"] == "pending"
    assert receipts[0]["amount"] == 19.99
    assert re.fullmatch(r"INV-\d{6}-0001", receipts[0]["receipt_number"])

    # a plan change reuses the customer and asks for a setup intent
    r2 = client.post("/api/subscriptions", json={"plan_id": plans["enterprise"]["id"]}, headers=OWNER)
    assert r2.status_code == 200
    assert r2.json()["subscription"]["current_price"] == 49.99
    assert len(fake_payments.customers) == 1
    assert len(fake_payments.setup_intents) == 1
    assert len(client.get("/api/receipts", headers=OWNER).json()) == 1


def test_downgrade_below_property_count_is_refused(client):
    plans = _plans(client)
    client.post("/api/subscriptions", json={"plan_id": plans["professional"]["id"]}, headers=OWNER)
    for n in range(4):
        make_property(client, OWNER, address=f"{n} Walnut St")

    r = client.post("/api/subscriptions", json={"plan_id": plans["basic"]["id"]}, headers=OWNER)
    assert r.status_code == 402
    assert r.json()["detail"]["code"] == "plan_limit_exceeded"


def test_cancel(client, db, fake_payments):
    plans = _plans(client)
    client.post("/api/subscriptions", json={"plan_id": plans["basic"]["id"]}, headers=OWNER)
    sub = db.scalar(select(Subscription))
    sub.processor_subscription_id = "sub_test_1"
    db.commit()

    r = client.put("/api/subscriptions/cancel", headers=OWNER)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "canceled"
    assert body["cancel_at_period_end"] is True
    assert body["end_date"] is not None
    assert fake_payments.canceled == ["sub_test_1"]

    assert client.put("/api/subscriptions/cancel", headers=OTHER_OWNER).status_code == 404


def test_webhook_rejects_bad_signature(client):
    body, headers = _signed({"type": "payment_intent.succeeded", "data": {"object": {}}}, secret="wrong")
    r = client.post("/api/subscriptions/webhook", content=body, headers=headers)
    assert r.status_code == 400

    r = client.post("/api/subscriptions/webhook", content=body, headers={"Content-Type": "application/json"})
    assert r.status_code == 400


def test_webhook_payment_succeeded_marks_receipt_paid(client, db, fake_payments):
    plans = _plans(client)
    out = client.post("/api/subscriptions", json={"plan_id": plans["basic"]["id"]}, headers=OWNER).json()
    receipt = db.get(Receipt, out["receipt_id"])

    body, headers = _signed(
        {
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": receipt.payment_intent_id, "metadata": {"subscription_id": str(out["subscription"]["id"])}}},
        }
    )
    r = client.post("/api/subscriptions/webhook", content=body, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json() == {"received": True, "handled": True}

    db.expire_all()
    assert db.get(Receipt, receipt.id).payment_status == "paid"
    sub = db.get(Subscription, out["subscription"]["id"])
    assert sub.status == "active"
    assert sub.last_payment_date is not None


def test_webhook_payment_failed_marks_past_due(client, db, fake_payments):
    plans = _plans(client)
    out = client.post("/api/subscriptions", json={"plan_id": plans["basic"]["id"]}, headers=OWNER).json()
    receipt = db.get(Receipt, out["receipt_id"])

    body, headers = _signed({"type": "payment_intent.payment_failed", "data": {"object": {"id": receipt.payment_intent_id}}})
    assert client.post("/api/subscriptions/webhook", content=body, headers=headers).status_code == 200

    db.expire_all()
    assert db.get(Receipt, receipt.id).payment_status == "failed"
    assert db.get(Subscription, out["subscription"]["id"]).status == "past_due"


def test_webhook_subscription_updated(client, db, fake_payments):
    plans = _plans(client)
    client.post("/api/subscriptions", json={"plan_id": plans["basic"]["id"]}, headers=OWNER)
    user = db.scalar(select(AppUser).where(AppUser.email == "owner@test.local"))

    period_end = 1_900_000_000
    body, headers = _signed(
        {
            "type": "customer.subscription.updated",
            "data": {
                "object": {
                    "id": "sub_live_9",
                    "customer": user.payment_customer_id,
                    "status": "active",
                    "cancel_at_period_end": True,
                    "current_period_end": period_end,
                }
            },
        }
    )
    assert client.post("/api/subscriptions/webhook", content=body, headers=headers).status_code == 200

    db.expire_all()
    sub = db.scalar(select(Subscription).where(Subscription.user_id == user.id))
    assert sub.cancel_at_period_end is True
    assert sub.processor_subscription_id == "sub_live_9"
    assert sub.end_date is not None and sub.end_date == sub.next_payment_date
    assert db.get(AppUser, user.id).payment_subscription_id == "sub_live_9"


def test_webhook_unknown_event_is_acknowledged(client):
    body, headers = _signed({"type": "charge.refunded", "data": {"object": {}}})
    r = client.post("/api/subscriptions/webhook", content=body, headers=headers)
    assert r.status_code == 200
    assert r.json() == {"received": True, "handled": False}


def test_webhook_route_is_sync():
    # database work must run in the threadpool, not on the event loop
    assert not inspect.iscoroutinefunction(webhook)


def test_renewing_subscription_notifies_owner(client, db, fake_payments):
    plans = _plans(client)
    client.post("/api/subscriptions", json={"plan_id": plans["basic"]["id"]}, headers=OWNER)
    user = db.scalar(select(AppUser).where(AppUser.email == "owner@test.local"))

    body, headers = _signed(
        {
            "type": "customer.subscription.updated",
            "data": {
                "object": {
                    "id": "sub_live_3",
                    "customer": user.payment_customer_id,
                    "status": "active",
                    "cancel_at_period_end": False,
                    "current_period_end": int(time.time()) + 10 * 86400 + 60,
                }
            },
        }
    )
    assert client.post("/api/subscriptions/webhook", content=body, headers=headers).status_code == 200

    notes = client.get("/api/notifications", headers=OWNER).json()
    renewal = [n for n in notes if n["type"] == "subscription_renewal"]
    assert len(renewal) == 1
    assert "renew in 10 days" in renewal[0]["message"]
    assert renewal[0]["related_entity_type"] == "subscription"
