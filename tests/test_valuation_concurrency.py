from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi import APIRouter
from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from conftest import OWNER, make_property
from equitystek.db import SessionLocal
from equitystek.errors import PaymentProcessorError
from equitystek.models import Property, Valuation
from equitystek.services.valuation_service import append_valuation


def test_second_append_on_stale_property_fails(client):
    pid = make_property(client, OWNER, current_value=500000)["id"]

    s1 = SessionLocal()
    s2 = SessionLocal()
    try:
        p1 = s1.get(Property, pid)
        p2 = s2.get(Property, pid)

        append_valuation(s1, p1, value=Decimal("502200"), method="automated", notes="first")
        s1.commit()

        with pytest.raises(StaleDataError):
            append_valuation(s2, p2, value=Decimal("501600"), method="automated", notes="second")
            s2.commit()
        s2.rollback()
    finally:
        s1.close()
        s2.close()

    check = SessionLocal()
    try:
        assert check.scalar(select(func.count(Valuation.id)).where(Valuation.property_id == pid)) == 2
        assert check.get(Property, pid).current_value == Decimal("502200.00")
    finally:
        check.close()


def test_conflict_and_processor_errors_map_to_status_codes(app, client):
    boom = APIRouter()

    @boom.get("/_boom/stale")
    def stale():
        raise StaleDataError("properties row version mismatch")

    @boom.get("/_boom/processor")
    def processor():
        raise PaymentProcessorError("card_declined", status_code=402)

    app.include_router(boom)

    r = client.get("/_boom/stale")
    assert r.status_code == 409
    assert r.json() == {"detail": "concurrent_update_conflict"}

    r = client.get("/_boom/processor")
    assert r.status_code == 500
    assert r.json() == {"detail": "payment_processor_error"}
