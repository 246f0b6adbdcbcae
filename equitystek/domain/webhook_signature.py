# equitystek/domain/webhook_signature.py
from __future__ import annotations

import hashlib
import hmac
import time
from typing import Optional


class SignatureError(ValueError):
    pass


def compute_signature(payload: bytes, timestamp: int, secret: str) -> str:
    msg = f"{int(timestamp)}.".encode() + payload
    return hmac.new(secret.encode("utf-8"), msg, hashlib.sha256).hexdigest()


def _parse_header(header: str) -> tuple[Optional[int], list[str]]:
    ts: Optional[int] = None
    sigs: list[str] = []
    for part in (header or "").split(","):
        k, _, v = part.strip().partition("=")
        if k == "t" and v.isdigit():
            ts = int(v)
        elif k == "v1" and v:
            sigs.append(v)
    return ts, sigs


def verify_signature(
    payload: bytes,
    header: Optional[str],
    secret: str,
    tolerance: int = 300,
    now: Optional[int] = None,
) -> int:
    """
    Check a `t=<unix>,v1=<hex>` header against HMAC-SHA256("<t>.<body>").

    Returns the signed timestamp, raises SignatureError otherwise.
    """
    if not header:
        raise SignatureError("missing signature header")

    ts, sigs = _parse_header(header)
    if ts is None or not sigs:
        raise SignatureError("malformed signature header")

    current = int(now if now is not None else time.time())
    if tolerance and abs(current - ts) > int(tolerance):
        raise SignatureError("timestamp outside tolerance")

    expected = compute_signature(payload, ts, secret)
    if not any(hmac.compare_digest(expected, s) for s in sigs):
        raise SignatureError("signature mismatch")
    return ts
