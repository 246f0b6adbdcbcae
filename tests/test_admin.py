from __future__ import annotations

from conftest import ADMIN, OTHER_OWNER, OWNER, TRADESPERSON, headers_for, make_property


def test_admin_routes_are_forbidden_to_owners(client):
    for path in (
        "/api/admin/users",
        "/api/admin/properties",
        "/api/admin/maintenance",
        "/api/admin/subscriptions",
        "/api/admin/receipts",
        "/api/admin/stats",
    ):
        assert client.get(path, headers=OWNER).status_code == 403, path


def test_admin_can_read_any_property(client):
    prop = make_property(client, OWNER)
    assert client.get(f"/api/properties/{prop['id']}", headers=ADMIN).status_code == 200

    listed = client.get("/api/admin/properties", headers=ADMIN).json()
    assert [p["id"] for p in listed] == [prop["id"]]


def test_admin_user_management(client):
    make_property(client, OWNER)
    users = client.get("/api/admin/users", headers=ADMIN).json()
    owner = next(u for u in users if u["email"] == "owner@test.local")

    r = client.patch(f"/api/admin/users/{owner['id']}", json={"role": "investor"}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["role"] == "investor"
    assert [u["email"] for u in client.get("/api/admin/users", params={"role": "investor"}, headers=ADMIN).json()] == [
        "owner@test.local"
    ]

    r = client.patch(f"/api/admin/users/{owner['id']}", json={"is_active": False}, headers=ADMIN)
    assert r.json()["is_active"] is False
    assert client.get("/api/properties", headers=OWNER).status_code == 401

    assert client.get("/api/admin/users/9999", headers=ADMIN).status_code == 404


def test_admin_plan_change_reprices(client):
    plans = {p["code"]: p for p in client.get("/api/subscriptions/plans").json()}
    client.post("/api/subscriptions", json={"plan_id": plans["basic"]["id"]}, headers=OWNER)
    make_property(client, OWNER)
    make_property(client, OWNER, address="2 Oak St")

    sub = client.get("/api/subscriptions/current", headers=OWNER).json()
    assert sub["current_price"] == 14.98

    r = client.patch(f"/api/admin/subscriptions/{sub['id']}", json={"plan_id": plans["professional"]["id"]}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["plan_id"] == plans["professional"]["id"]
    assert r.json()["current_price"] == 23.98


def test_admin_stats(client):
    plans = {p["code"]: p for p in client.get("/api/subscriptions/plans").json()}
    client.post("/api/subscriptions", json={"plan_id": plans["basic"]["id"]}, headers=OWNER)
    a = make_property(client, OWNER, current_value=500000)
    make_property(client, OTHER_OWNER, current_value=250000)
    client.post(
        "/api/maintenance",
        json={
            "property_id": a["id"],
            "title": "Water heater",
            "description": "Replaced",
            "category": "appliance",
            "cost": 800,
            "completion_date": "2026-02-01",
        },
        headers=OWNER,
    )

    r = client.get("/api/admin/stats", headers=ADMIN)
    assert r.status_code == 200, r.text
    s = r.json()
    assert s["total_users"] == 3
    assert s["users_by_role"] == {"owner": 2, "admin": 1}
    assert s["total_properties"] == 2
    assert s["active_properties"] == 2
    assert s["total_maintenance_records"] == 1
    assert s["total_maintenance_cost"] == 800
    assert s["total_portfolio_value"] == 750000
    assert s["active_subscriptions"] == 1
    assert s["monthly_recurring_revenue"] == 9.99
    assert s["total_revenue"] == 0


def _record(client, headers, property_id, **overrides):
    payload = {
        "property_id": property_id,
        "title": "New roof",
        "description": "Full replacement",
        "category": "roofing",
        "cost": 2000,
        "completion_date": "2026-04-01",
    }
    payload.update(overrides)
    r = client.post("/api/maintenance", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_admin_maintenance_views(client):
    a = make_property(client, OWNER)
    b = make_property(client, OTHER_OWNER)
    rec_a = _record(client, OWNER, a["id"])
    rec_b = _record(client, OTHER_OWNER, b["id"], cost=500)
    client.delete(f"/api/maintenance/{rec_b['id']}", headers=OTHER_OWNER)

    listed = client.get("/api/admin/maintenance", headers=ADMIN).json()
    assert [r["id"] for r in listed] == [rec_a["id"]]
    everything = client.get("/api/admin/maintenance", params={"include_inactive": True}, headers=ADMIN).json()
    assert {r["id"] for r in everything} == {rec_a["id"], rec_b["id"]}
    scoped = client.get("/api/admin/maintenance", params={"property_id": b["id"], "include_inactive": True}, headers=ADMIN)
    assert [r["id"] for r in scoped.json()] == [rec_b["id"]]

    assert client.get(f"/api/admin/maintenance/{rec_b['id']}", headers=ADMIN).json()["is_active"] is False
    assert client.get("/api/admin/maintenance/9999", headers=ADMIN).status_code == 404


def test_admin_maintenance_patch_adjusts_valuation(client):
    prop = make_property(client, OWNER, current_value=500000)
    rec = _record(client, OWNER, prop["id"], category="roofing", cost=2000)
    assert client.get(f"/api/properties/{prop['id']}", headers=OWNER).json()["current_value"] == 501400

    r = client.patch(f"/api/admin/maintenance/{rec['id']}", json={"cost": 3000}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["estimated_value_added"] == 2100
    assert client.get(f"/api/properties/{prop['id']}", headers=OWNER).json()["current_value"] == 502100

    assert client.patch(f"/api/admin/maintenance/{rec['id']}", json={"cost": 1}, headers=OWNER).status_code == 403


def test_admin_property_patch_notifies_owner(client):
    prop = make_property(client, OWNER)

    r = client.patch(f"/api/admin/properties/{prop['id']}", json={"city": "Dallas", "bedrooms": 4}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["city"] == "Dallas"

    notes = client.get("/api/notifications", headers=OWNER).json()
    assert [n["type"] for n in notes] == ["property_update"]
    assert "bedrooms, city" in notes[0]["message"]

    # owners editing their own property get no notice
    client.put(f"/api/properties/{prop['id']}", json={"city": "Houston"}, headers=OWNER)
    assert len(client.get("/api/notifications", headers=OWNER).json()) == 1

    assert client.patch("/api/admin/properties/9999", json={"city": "X"}, headers=ADMIN).status_code == 404


def test_tradesperson_directory(client):
    make_property(client, OWNER)
    client.get("/api/tradesperson/work-records", headers=TRADESPERSON)
    client.get("/api/tradesperson/work-records", headers=headers_for("plumber@test.local", "tradesperson"))

    listed = client.get("/api/tradespeople", headers=OWNER).json()
    assert sorted(t["email"] for t in listed) == ["plumber@test.local", "sparky@test.local"]
    assert "purchase_price" not in listed[0]

    assert client.get("/api/tradespeople").status_code == 401


def test_tradesperson_property_list(client):
    prop = make_property(client, OWNER)
    other = make_property(client, OTHER_OWNER, address="9 Elm St")
    client.put(f"/api/properties/{other['id']}", json={"is_active": False}, headers=OTHER_OWNER)

    r = client.get("/api/tradesperson/properties", headers=TRADESPERSON)
    assert r.status_code == 200
    assert r.json() == [
        {"id": prop["id"], "address": "12 Oak St", "city": "Austin", "state": "TX", "zip_code": "78701"}
    ]

    assert client.get("/api/tradesperson/properties", headers=OWNER).status_code == 403
