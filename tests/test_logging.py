from __future__ import annotations

import json
import logging

from equitystek.logging_config import JsonFormatter
from equitystek.middleware.request_id import request_id_ctx


def test_response_echoes_a_well_formed_request_id(client):
    r = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"


def test_malformed_request_id_is_replaced(client):
    r = client.get("/api/health", headers={"X-Request-ID": "x" * 200})
    rid = r.headers["X-Request-ID"]
    assert rid != "x" * 200
    assert len(rid) == 32

    assert client.get("/api/health").headers["X-Request-ID"]


def test_formatter_emits_extras_and_request_id():
    record = logging.LogRecord("equitystek.valuation", logging.INFO, __file__, 1, "valuation adjusted by %s", ("2200.00",), None)
    record.property_id = 7
    record.maintenance_record_id = 3

    token = request_id_ctx.set("req-1")
    try:
        out = json.loads(JsonFormatter().format(record))
    finally:
        request_id_ctx.reset(token)

    assert out["message"] == "valuation adjusted by 2200.00"
    assert out["request_id"] == "req-1"
    assert out["property_id"] == 7
    assert out["maintenance_record_id"] == 3
    assert "args" not in out and "msg" not in out
