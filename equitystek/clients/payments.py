from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from ..config import settings
from ..errors import PaymentProcessorError

log = logging.getLogger("equitystek.payments")


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: Optional[str]
    status: str
    amount_cents: int
    raw: dict[str, Any]


@dataclass(frozen=True)
class SetupIntent:
    id: str
    client_secret: Optional[str]
    raw: dict[str, Any]


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, str]:
    # Stripe-style form encoding: metadata[user_id]=1
    out: dict[str, str] = {}
    for k, v in data.items():
        key = f"{prefix}[{k}]" if prefix else str(k)
        if v is None:
            continue
        if isinstance(v, dict):
            out.update(_flatten(v, key))
        elif isinstance(v, bool):
            out[key] = "true" if v else "false"
        else:
            out[key] = str(v)
    return out


class PaymentClient:
    """
    Thin REST client for a Stripe-compatible processor.
    Every failure surfaces as PaymentProcessorError.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base = (base_url or settings.payment_base_url).rstrip("/")
        self.timeout = float(timeout if timeout is not None else settings.payment_timeout_seconds)
        self._transport = transport

    def _post(self, path: str, data: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base}/{path.lstrip('/')}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(url, data=_flatten(data), auth=(self.api_key, ""))
        except httpx.HTTPError as e:
            log.error("payment processor unreachable: %s", e)
            raise PaymentProcessorError(f"request to {path} failed: {e}") from e

        try:
            body = r.json()
        except ValueError:
            body = {"raw": r.text}

        if r.status_code >= 400:
            msg = (body.get("error") or {}).get("message") if isinstance(body, dict) else None
            raise PaymentProcessorError(msg or f"{path} returned {r.status_code}", status_code=r.status_code, payload=body)
        return body

    def create_customer(self, *, email: str, name: Optional[str] = None, user_id: Optional[int] = None) -> str:
        body = self._post("customers", {"email": email, "name": name, "metadata": {"user_id": user_id}})
        return str(body["id"])

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        currency: str,
        customer_id: str,
        description: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> PaymentIntent:
        body = self._post(
            "payment_intents",
            {
                "amount": int(amount_cents),
                "currency": currency,
                "customer": customer_id,
                "description": description,
                "metadata": metadata or {},
                "automatic_payment_methods": {"enabled": True},
            },
        )
        return PaymentIntent(
            id=str(body["id"]),
            client_secret=body.get("client_secret"),
            status=str(body.get("status") or ""),
            amount_cents=int(body.get("amount") or amount_cents),
            raw=body,
        )

    def create_setup_intent(self, *, customer_id: str, metadata: Optional[dict[str, Any]] = None) -> SetupIntent:
        body = self._post("setup_intents", {"customer": customer_id, "metadata": metadata or {}})
        return SetupIntent(id=str(body["id"]), client_secret=body.get("client_secret"), raw=body)

    def cancel_subscription_at_period_end(self, subscription_id: str) -> dict[str, Any]:
        return self._post(f"subscriptions/{subscription_id}", {"cancel_at_period_end": True})


def get_payment_client() -> Optional[PaymentClient]:
    """FastAPI dependency. None when no processor key is configured."""
    if not settings.payment_api_key:
        return None
    return PaymentClient(settings.payment_api_key)
