# equitystek/services/billing_events.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import AppUser, Receipt, Subscription
from .notifications import notify_subscription_renewal

log = logging.getLogger("equitystek.billing")

SUBSCRIPTION_STATUSES = {"active", "canceled", "past_due", "trialing", "unpaid"}

# processor statuses with no local counterpart
_STATUS_ALIASES = {
    "incomplete": "unpaid",
    "incomplete_expired": "canceled",
    "paused": "past_due",
}


def _ts(v: Any) -> Optional[datetime]:
    if v in (None, "", 0):
        return None
    try:
        return datetime.utcfromtimestamp(int(v))
    except (TypeError, ValueError, OverflowError):
        return None


def _local_status(s: Any) -> Optional[str]:
    s = str(s or "").strip().lower()
    if s in SUBSCRIPTION_STATUSES:
        return s
    return _STATUS_ALIASES.get(s)


def _receipt_for_intent(db: Session, intent_id: str) -> Optional[Receipt]:
    if not intent_id:
        return None
    return db.scalar(select(Receipt).where(Receipt.payment_intent_id == intent_id))


def _subscription_for_intent(db: Session, obj: dict[str, Any], receipt: Optional[Receipt]) -> Optional[Subscription]:
    sub_id = (obj.get("metadata") or {}).get("subscription_id")
    if sub_id and str(sub_id).isdigit():
        sub = db.get(Subscription, int(sub_id))
        if sub is not None:
            return sub
    if receipt is not None and receipt.subscription_id:
        return db.get(Subscription, int(receipt.subscription_id))
    return None


def on_payment_succeeded(db: Session, obj: dict[str, Any]) -> None:
    receipt = _receipt_for_intent(db, str(obj.get("id") or ""))
    if receipt is not None:
        receipt.payment_status = "paid"

    sub = _subscription_for_intent(db, obj, receipt)
    if sub is not None:
        sub.status = "active"
        sub.last_payment_date = datetime.utcnow()

    log.info(
        "payment succeeded",
        extra={"event_type": "payment_intent.succeeded", "subscription_id": sub.id if sub else None},
    )


def on_payment_failed(db: Session, obj: dict[str, Any]) -> None:
    receipt = _receipt_for_intent(db, str(obj.get("id") or ""))
    if receipt is not None:
        receipt.payment_status = "failed"

    sub = _subscription_for_intent(db, obj, receipt)
    if sub is not None:
        sub.status = "past_due"

    log.warning(
        "payment failed",
        extra={"event_type": "payment_intent.payment_failed", "subscription_id": sub.id if sub else None},
    )


def on_subscription_changed(db: Session, obj: dict[str, Any], *, deleted: bool = False) -> None:
    customer_id = str(obj.get("customer") or "")
    user = db.scalar(select(AppUser).where(AppUser.payment_customer_id == customer_id)) if customer_id else None
    if user is None:
        log.info("subscription event for unknown customer ignored", extra={"event_type": "customer.subscription"})
        return

    user.payment_subscription_id = None if deleted else (obj.get("id") or user.payment_subscription_id)

    sub = db.scalar(select(Subscription).where(Subscription.user_id == user.id))
    if sub is None:
        return

    if obj.get("id"):
        sub.processor_subscription_id = str(obj["id"])

    period_end = _ts(obj.get("current_period_end"))
    period_start = _ts(obj.get("current_period_start"))
    if period_start:
        sub.current_period_start = period_start
    if period_end:
        sub.current_period_end = period_end

    if deleted:
        sub.status = "canceled"
        sub.end_date = _ts(obj.get("ended_at")) or period_end or datetime.utcnow()
        sub.next_payment_date = None
        return

    status = _local_status(obj.get("status"))
    if status:
        sub.status = status

    if obj.get("cancel_at_period_end"):
        sub.cancel_at_period_end = True
        sub.end_date = period_end or sub.end_date
    if period_end:
        sub.next_payment_date = period_end
        if sub.status == "active" and not sub.cancel_at_period_end:
            notify_subscription_renewal(db, sub, period_end)


_HANDLERS: dict[str, Callable[[Session, dict[str, Any]], None]] = {
    "payment_intent.succeeded": on_payment_succeeded,
    "payment_intent.payment_failed": on_payment_failed,
    "customer.subscription.created": on_subscription_changed,
    "customer.subscription.updated": on_subscription_changed,
    "customer.subscription.deleted": lambda db, obj: on_subscription_changed(db, obj, deleted=True),
}


def handle_event(db: Session, event: dict[str, Any]) -> bool:
    """
    Apply one processor event to local state. Returns False for event types
    we do not act on. Does not commit.
    """
    etype = str(event.get("type") or "")
    obj = ((event.get("data") or {}).get("object")) or {}

    handler = _HANDLERS.get(etype)
    if handler is None:
        log.info("unhandled payment event %s", etype, extra={"event_type": etype})
        return False

    handler(db, obj)
    return True
