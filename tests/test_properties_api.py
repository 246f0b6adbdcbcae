from __future__ import annotations

from sqlalchemy import func, select

from conftest import OTHER_OWNER, OWNER, make_property
from equitystek.models import MaintenanceRecord, SubscriptionPlan, Valuation


def _subscribe(client, headers, code):
    plans = {p["code"]: p for p in client.get("/api/subscriptions/plans").json()}
    r = client.post("/api/subscriptions", json={"plan_id": plans[code]["id"]}, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["subscription"]


def test_create_list_get(client):
    created = make_property(client, OWNER, address="9 Elm St", lot_size=0.2)
    assert created["address"] == "9 Elm St"
    assert created["current_value"] == 450000
    assert created["is_active"] is True

    listed = client.get("/api/properties", headers=OWNER).json()
    assert [p["id"] for p in listed] == [created["id"]]

    got = client.get(f"/api/properties/{created['id']}", headers=OWNER)
    assert got.status_code == 200
    assert got.json()["zip_code"] == "78701"


def test_unauthenticated_request_is_401(client):
    assert client.get("/api/properties").status_code == 401


def test_other_users_property_is_401_and_missing_is_404(client):
    prop = make_property(client, OWNER)
    assert client.get(f"/api/properties/{prop['id']}", headers=OTHER_OWNER).status_code == 401
    assert client.put(f"/api/properties/{prop['id']}", json={"city": "X"}, headers=OTHER_OWNER).status_code == 401
    assert client.delete(f"/api/properties/{prop['id']}", headers=OTHER_OWNER).status_code == 401
    assert client.get("/api/properties/424242", headers=OWNER).status_code == 404
    assert client.get("/api/properties", headers=OTHER_OWNER).json() == []


def test_bad_payload_lists_field_errors(client):
    r = client.post(
        "/api/properties",
        json={"address": "1 Main", "state": "TX", "zip_code": "78701", "bedrooms": -1},
        headers=OWNER,
    )
    assert r.status_code == 400
    body = r.json()
    assert body["detail"] == "validation_failed"
    fields = {e["field"] for e in body["errors"]}
    assert {"city", "bedrooms"} <= fields
    assert all(e["message"] for e in body["errors"])


def test_update_fields_and_owner_estimate(client):
    prop = make_property(client, OWNER, current_value=460000)
    r = client.put(
        f"/api/properties/{prop['id']}",
        json={"bedrooms": 4, "current_value": 470000, "valuation_notes": "comparable sale"},
        headers=OWNER,
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["bedrooms"] == 4
    assert body["current_value"] == 470000

    vals = client.get("/api/valuations", params={"property_id": prop["id"]}, headers=OWNER).json()
    assert vals[0]["method"] == "owner_estimate"
    assert vals[0]["notes"] == "comparable sale"


def test_delete_cascades_to_records_and_valuations(client, db):
    prop = make_property(client, OWNER, current_value=500000)
    client.post(
        "/api/maintenance",
        json={
            "property_id": prop["id"],
            "title": "Roof",
            "description": "New shingles",
            "category": "roofing",
            "cost": 8000,
            "completion_date": "2026-04-01",
        },
        headers=OWNER,
    )
    assert db.scalar(select(func.count(Valuation.id)).where(Valuation.property_id == prop["id"])) == 2

    r = client.delete(f"/api/properties/{prop['id']}", headers=OWNER)
    assert r.status_code == 200
    assert client.get(f"/api/properties/{prop['id']}", headers=OWNER).status_code == 404

    db.expire_all()
    assert db.scalar(select(func.count(Valuation.id)).where(Valuation.property_id == prop["id"])) == 0
    assert db.scalar(select(func.count(MaintenanceRecord.id)).where(MaintenanceRecord.property_id == prop["id"])) == 0


def test_property_writes_resync_subscription(client):
    _subscribe(client, OWNER, "professional")

    ids = [make_property(client, OWNER, address=f"{n} Pine St")["id"] for n in range(3)]
    sub = client.get("/api/subscriptions/current", headers=OWNER).json()
    assert sub["property_count"] == 3
    assert sub["current_price"] == 27.97

    client.delete(f"/api/properties/{ids[0]}", headers=OWNER)
    sub = client.get("/api/subscriptions/current", headers=OWNER).json()
    assert sub["property_count"] == 2
    assert sub["current_price"] == 23.98

    # deactivation counts too
    client.put(f"/api/properties/{ids[1]}", json={"is_active": False}, headers=OWNER)
    sub = client.get("/api/subscriptions/current", headers=OWNER).json()
    assert sub["property_count"] == 1
    assert sub["current_price"] == 19.99
    assert len(client.get("/api/properties", headers=OWNER).json()) == 1
    assert len(client.get("/api/properties", params={"include_inactive": True}, headers=OWNER).json()) == 2


def test_plan_allowance_blocks_extra_property(client):
    for n in range(3):
        make_property(client, OWNER, address=f"{n} Birch St")

    r = client.post(
        "/api/properties",
        json={"address": "4 Birch St", "city": "Austin", "state": "TX", "zip_code": "78701"},
        headers=OWNER,
    )
    assert r.status_code == 402
    assert r.json()["detail"]["code"] == "plan_limit_exceeded"
    assert r.json()["detail"]["max_properties"] == 3


def test_unlimited_plan_has_no_allowance(client, db):
    _subscribe(client, OWNER, "enterprise")
    for n in range(5):
        make_property(client, OWNER, address=f"{n} Cedar St")
    sub = client.get("/api/subscriptions/current", headers=OWNER).json()
    assert sub["property_count"] == 5
    plan = db.scalar(select(SubscriptionPlan).where(SubscriptionPlan.code == "enterprise"))
    assert plan.max_properties is None
