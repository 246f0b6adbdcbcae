from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..clients.payments import PaymentClient, get_payment_client
from ..config import settings
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.pricing import billable_additional_properties, subscription_price, to_cents, within_allowance
from ..domain.receipts import subscription_line_items
from ..domain.webhook_signature import SignatureError, verify_signature
from ..models import AppUser, Subscription, SubscriptionPlan
from ..schemas import PlanOut, PriceQuoteOut, SubscriptionCheckoutOut, SubscriptionCreate, SubscriptionOut
from ..services.billing_events import handle_event
from ..services.receipt_service import create_receipt
from ..services.subscription_service import (
    add_months,
    count_active_properties,
    get_subscription,
    list_plans,
    must_get_plan,
    period_months,
    resync_subscription,
)

log = logging.getLogger("equitystek.subscriptions")

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


def _quote(plan: SubscriptionPlan, property_count: int) -> PriceQuoteOut:
    return PriceQuoteOut(
        plan_id=int(plan.id),
        plan_name=str(plan.name),
        property_count=int(property_count),
        additional_properties=billable_additional_properties(property_count),
        base_price=float(plan.base_price),
        price_per_property=float(plan.price_per_property),
        total_price=float(subscription_price(plan, property_count)),
        max_properties=plan.max_properties,
        within_allowance=within_allowance(plan, property_count),
    )


@router.get("/plans", response_model=list[PlanOut])
def plans(db: Session = Depends(get_db)):
    return list_plans(db)


@router.get("/current", response_model=SubscriptionOut)
def current(db: Session = Depends(get_db), p=Depends(get_principal)):
    sub = get_subscription(db, p.user_id)
    if sub is None:
        raise HTTPException(status_code=404, detail="no subscription")
    return sub


@router.get("/calculate-price", response_model=PriceQuoteOut)
def calculate_price(
    plan_id: int = Query(...),
    property_count: int = Query(..., ge=0),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    plan = must_get_plan(db, plan_id)
    return _quote(plan, property_count)


@router.get("/price-estimate", response_model=list[PriceQuoteOut])
def price_estimate(property_count: int = Query(default=1, ge=0), db: Session = Depends(get_db)):
    return [_quote(plan, property_count) for plan in list_plans(db)]


def _ensure_customer(db: Session, client: PaymentClient, user: AppUser) -> str:
    if user.payment_customer_id:
        return str(user.payment_customer_id)
    user.payment_customer_id = client.create_customer(email=user.email, name=user.full_name, user_id=int(user.id))
    db.add(user)
    return str(user.payment_customer_id)


@router.post("", response_model=SubscriptionCheckoutOut)
def create_or_change(
    payload: SubscriptionCreate,
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    client: Optional[PaymentClient] = Depends(get_payment_client),
):
    """
    Subscribe to a plan, or move an existing subscription to another plan.
    With a payment processor configured, a new subscription gets a payment
    intent and a pending receipt; a plan change gets a setup intent.
    """
    plan = must_get_plan(db, payload.plan_id)
    user = db.get(AppUser, p.user_id)

    count = count_active_properties(db, p.user_id)
    if not within_allowance(plan, count):
        raise HTTPException(
            status_code=402,
            detail={"code": "plan_limit_exceeded", "plan": plan.code, "max_properties": plan.max_properties, "requested": count},
        )

    now = datetime.utcnow()
    sub = get_subscription(db, p.user_id)
    is_new = sub is None
    before = None if is_new else {"plan_id": sub.plan_id, "status": sub.status}

    if is_new:
        period_end = add_months(now, period_months(plan))
        sub = Subscription(
            user_id=p.user_id,
            plan_id=int(plan.id),
            status="active",
            property_count=count,
            current_price=subscription_price(plan, count),
            start_date=now,
            current_period_start=now,
            current_period_end=period_end,
            next_payment_date=period_end,
            created_at=now,
        )
        db.add(sub)
    else:
        sub.plan_id = int(plan.id)
        sub.status = "active"
        sub.cancel_at_period_end = False
        sub.end_date = None
        db.add(sub)

    db.flush()
    db.refresh(sub)
    resync_subscription(db, p.user_id)

    client_secret = None
    receipt_id = None
    if client is not None:
        customer_id = _ensure_customer(db, client, user)
        if is_new:
            intent = client.create_payment_intent(
                amount_cents=to_cents(sub.current_price),
                currency=settings.payment_currency,
                customer_id=customer_id,
                description=f"{plan.name} subscription",
                metadata={"subscription_id": sub.id, "user_id": p.user_id},
            )
            receipt = create_receipt(
                db,
                user_id=p.user_id,
                subscription_id=int(sub.id),
                amount=sub.current_price,
                currency=settings.payment_currency,
                description=f"{plan.name} subscription ({sub.property_count} properties)",
                items=subscription_line_items(
                    plan_name=plan.name,
                    base_price=plan.base_price,
                    price_per_property=plan.price_per_property,
                    property_count=sub.property_count,
                ),
                payment_intent_id=intent.id,
            )
            client_secret = intent.client_secret
            receipt_id = int(receipt.id)
        else:
            setup = client.create_setup_intent(customer_id=customer_id, metadata={"subscription_id": sub.id})
            client_secret = setup.client_secret

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="subscription.create" if is_new else "subscription.change_plan",
        entity_type="Subscription",
        entity_id=sub.id,
        before=before,
        after={"plan_id": sub.plan_id, "status": sub.status, "current_price": sub.current_price},
    )
    db.commit()
    db.refresh(sub)
    return SubscriptionCheckoutOut(
        subscription=SubscriptionOut.model_validate(sub),
        client_secret=client_secret,
        receipt_id=receipt_id,
    )


@router.put("/cancel", response_model=SubscriptionOut)
def cancel(
    db: Session = Depends(get_db),
    p=Depends(get_principal),
    client: Optional[PaymentClient] = Depends(get_payment_client),
):
    sub = get_subscription(db, p.user_id)
    if sub is None:
        raise HTTPException(status_code=404, detail="no subscription")

    if client is not None and sub.processor_subscription_id:
        client.cancel_subscription_at_period_end(str(sub.processor_subscription_id))

    before = {"status": sub.status, "cancel_at_period_end": sub.cancel_at_period_end}
    sub.status = "canceled"
    sub.cancel_at_period_end = True
    sub.end_date = add_months(datetime.utcnow(), 1)
    sub.next_payment_date = None
    db.add(sub)
    audit_write(
        db,
        actor_user_id=p.user_id,
        action="subscription.cancel",
        entity_type="Subscription",
        entity_id=sub.id,
        before=before,
        after={"status": sub.status, "end_date": sub.end_date},
    )
    db.commit()
    db.refresh(sub)
    return sub


async def raw_body(request: Request) -> bytes:
    """Signature checks need the exact bytes the processor signed."""
    return await request.body()


@router.post("/webhook")
def webhook(
    body: bytes = Depends(raw_body),
    db: Session = Depends(get_db),
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
):
    secret = settings.payment_webhook_secret
    if not secret:
        raise HTTPException(status_code=400, detail="webhook secret not configured")

    try:
        verify_signature(body, stripe_signature, secret, tolerance=settings.payment_webhook_tolerance_seconds)
    except SignatureError as e:
        log.warning("webhook signature rejected: %s", e)
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}")

    try:
        event = json.loads(body.decode("utf-8"))
    except ValueError:
        raise HTTPException(status_code=400, detail="Webhook Error: invalid JSON")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Webhook Error: invalid event")

    handled = handle_event(db, event)
    db.commit()
    return {"received": True, "handled": handled}
