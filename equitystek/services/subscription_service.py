# equitystek/services/subscription_service.py
from __future__ import annotations

import calendar
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.pricing import subscription_price, within_allowance
from ..models import Property, Subscription, SubscriptionPlan

log = logging.getLogger("equitystek.subscriptions")


DEFAULT_PLANS = {
    "basic": {
        "name": "Basic",
        "description": "For owners getting started with a single home.",
        "base_price": Decimal("9.99"),
        "price_per_property": Decimal("4.99"),
        "max_properties": 3,
        "features": ["Property tracking", "Maintenance log", "Automated valuations"],
    },
    "professional": {
        "name": "Professional",
        "description": "For landlords managing a small portfolio.",
        "base_price": Decimal("19.99"),
        "price_per_property": Decimal("3.99"),
        "max_properties": 10,
        "features": [
            "Property tracking",
            "Maintenance log",
            "Automated valuations",
            "Tradesperson work records",
            "Receipt history",
        ],
    },
    "enterprise": {
        "name": "Enterprise",
        "description": "Unlimited properties for investors and property managers.",
        "base_price": Decimal("49.99"),
        "price_per_property": Decimal("2.99"),
        "max_properties": None,
        "features": [
            "Property tracking",
            "Maintenance log",
            "Automated valuations",
            "Tradesperson work records",
            "Receipt history",
            "Priority support",
        ],
    },
}


def ensure_default_plans(db: Session) -> None:
    existing = {p.code for p in db.scalars(select(SubscriptionPlan)).all()}
    added = False
    for code, terms in DEFAULT_PLANS.items():
        if code in existing:
            continue
        db.add(SubscriptionPlan(code=code, billing_cycle="monthly", is_active=True, **terms))
        added = True
    if added:
        db.commit()


def list_plans(db: Session) -> list[SubscriptionPlan]:
    ensure_default_plans(db)
    return list(
        db.scalars(
            select(SubscriptionPlan).where(SubscriptionPlan.is_active.is_(True)).order_by(SubscriptionPlan.base_price)
        ).all()
    )


def must_get_plan(db: Session, plan_id: int) -> SubscriptionPlan:
    plan = db.get(SubscriptionPlan, plan_id)
    if plan is None or not plan.is_active:
        raise HTTPException(status_code=404, detail="plan not found")
    return plan


def get_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    return db.scalar(select(Subscription).where(Subscription.user_id == int(user_id)))


def count_active_properties(db: Session, user_id: int) -> int:
    n = db.scalar(
        select(func.count(Property.id)).where(Property.user_id == int(user_id), Property.is_active.is_(True))
    )
    return int(n or 0)


def resync_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    """
    Recount the user's active properties and reprice their subscription.
    Idempotent; a no-op for users without a subscription. Does not commit.
    """
    sub = get_subscription(db, user_id)
    if sub is None:
        return None

    db.flush()
    count = count_active_properties(db, user_id)
    plan = db.get(SubscriptionPlan, sub.plan_id)
    price = subscription_price(plan, count)
    if sub.property_count != count or sub.current_price != price:
        log.info(
            "subscription resynced: %s properties -> %s",
            count,
            price,
            extra={"user_id": user_id, "subscription_id": sub.id},
        )
    sub.property_count = count
    sub.current_price = price
    db.add(sub)
    return sub


def enforce_property_allowance(db: Session, user_id: int, *, adding: int = 1) -> None:
    """
    402 when one more active property would exceed the plan's allowance.
    Users without an active subscription are held to the default plan.
    """
    sub = get_subscription(db, user_id)
    if sub is not None and sub.status in ("active", "trialing", "past_due"):
        plan = db.get(SubscriptionPlan, sub.plan_id)
    else:
        ensure_default_plans(db)
        plan = db.scalar(select(SubscriptionPlan).where(SubscriptionPlan.code == settings.default_plan_code))
    if plan is None:
        return

    wanted = count_active_properties(db, user_id) + int(adding)
    if not within_allowance(plan, wanted):
        raise HTTPException(
            status_code=402,
            detail={
                "code": "plan_limit_exceeded",
                "plan": plan.code,
                "max_properties": plan.max_properties,
                "requested": wanted,
            },
        )


def add_months(dt: datetime, months: int) -> datetime:
    """Calendar month arithmetic; the day clamps to the end of shorter months."""
    m = dt.month - 1 + int(months)
    year = dt.year + m // 12
    month = m % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def period_months(plan: SubscriptionPlan) -> int:
    return 12 if (plan.billing_cycle or "").lower() in ("annual", "yearly") else 1
