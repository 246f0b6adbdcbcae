from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..db import get_db
from ..domain.audit import audit_write
from ..domain.stats import admin_rollup
from ..models import AppUser, MaintenanceRecord, Property, Receipt, Subscription
from ..schemas import (
    AdminStatsOut,
    MaintenanceOut,
    MaintenanceUpdate,
    PropertyOut,
    PropertyUpdate,
    ReceiptOut,
    SubscriptionAdminUpdate,
    SubscriptionOut,
    SystemNoticeIn,
    UserAdminUpdate,
    UserOut,
)
from ..services.notifications import send_system_notice
from ..services.subscription_service import must_get_plan, resync_subscription
from .maintenance import update_record
from .properties import update_property

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=list[UserOut])
def list_users(role: Optional[str] = Query(default=None), db: Session = Depends(get_db), p=Depends(require_admin)):
    stmt = select(AppUser)
    if role:
        stmt = stmt.where(AppUser.role == role)
    return db.scalars(stmt.order_by(desc(AppUser.id))).all()


@router.get("/users/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), p=Depends(require_admin)):
    user = db.get(AppUser, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="user not found")
    return user


@router.patch("/users/{user_id}", response_model=UserOut)
def update_user(user_id: int, payload: UserAdminUpdate, db: Session = Depends(get_db), p=Depends(require_admin)):
    user = db.get(AppUser, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="user not found")

    before = {"role": user.role, "is_active": user.is_active, "full_name": user.full_name}
    for k, v in payload.model_dump(exclude_unset=True).items():
        if v is not None:
            setattr(user, k, v)
    db.add(user)
    audit_write(
        db,
        actor_user_id=p.user_id,
        action="admin.user.update",
        entity_type="AppUser",
        entity_id=user.id,
        before=before,
        after={"role": user.role, "is_active": user.is_active, "full_name": user.full_name},
    )
    db.commit()
    db.refresh(user)
    return user


@router.get("/properties", response_model=list[PropertyOut])
def list_all_properties(
    user_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    p=Depends(require_admin),
):
    stmt = select(Property)
    if user_id is not None:
        stmt = stmt.where(Property.user_id == user_id)
    return db.scalars(stmt.order_by(desc(Property.id))).all()


@router.patch("/properties/{property_id}", response_model=PropertyOut)
def admin_update_property(
    property_id: int,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    p=Depends(require_admin),
):
    # same rules as the owner route; admin passes the ownership check
    return update_property(property_id, payload, db=db, p=p)


@router.get("/maintenance", response_model=list[MaintenanceOut])
def list_all_maintenance(
    property_id: Optional[int] = Query(default=None),
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    p=Depends(require_admin),
):
    stmt = select(MaintenanceRecord)
    if property_id is not None:
        stmt = stmt.where(MaintenanceRecord.property_id == property_id)
    if not include_inactive:
        stmt = stmt.where(MaintenanceRecord.is_active.is_(True))
    return db.scalars(stmt.order_by(desc(MaintenanceRecord.completion_date), desc(MaintenanceRecord.id))).all()


@router.get("/maintenance/{record_id}", response_model=MaintenanceOut)
def get_any_maintenance(record_id: int, db: Session = Depends(get_db), p=Depends(require_admin)):
    row = db.get(MaintenanceRecord, record_id)
    if row is None:
        raise HTTPException(status_code=404, detail="maintenance record not found")
    return row


@router.patch("/maintenance/{record_id}", response_model=MaintenanceOut)
def admin_update_maintenance(
    record_id: int,
    payload: MaintenanceUpdate,
    db: Session = Depends(get_db),
    p=Depends(require_admin),
):
    return update_record(record_id, payload, db=db, p=p)


@router.get("/subscriptions", response_model=list[SubscriptionOut])
def list_subscriptions(
    status: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p=Depends(require_admin),
):
    stmt = select(Subscription)
    if status:
        stmt = stmt.where(Subscription.status == status)
    return db.scalars(stmt.order_by(desc(Subscription.id))).all()


@router.patch("/subscriptions/{subscription_id}", response_model=SubscriptionOut)
def update_subscription(
    subscription_id: int,
    payload: SubscriptionAdminUpdate,
    db: Session = Depends(get_db),
    p=Depends(require_admin),
):
    sub = db.get(Subscription, subscription_id)
    if sub is None:
        raise HTTPException(status_code=404, detail="subscription not found")

    before = {"plan_id": sub.plan_id, "status": sub.status, "cancel_at_period_end": sub.cancel_at_period_end}
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("plan_id") is not None:
        sub.plan_id = int(must_get_plan(db, int(changes["plan_id"])).id)
    if changes.get("status") is not None:
        sub.status = changes["status"]
    if changes.get("cancel_at_period_end") is not None:
        sub.cancel_at_period_end = bool(changes["cancel_at_period_end"])
    db.add(sub)

    resync_subscription(db, sub.user_id)
    audit_write(
        db,
        actor_user_id=p.user_id,
        action="admin.subscription.update",
        entity_type="Subscription",
        entity_id=sub.id,
        before=before,
        after={"plan_id": sub.plan_id, "status": sub.status, "current_price": sub.current_price},
    )
    db.commit()
    db.refresh(sub)
    return sub


@router.get("/receipts", response_model=list[ReceiptOut])
def list_all_receipts(
    user_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    p=Depends(require_admin),
):
    stmt = select(Receipt)
    if user_id is not None:
        stmt = stmt.where(Receipt.user_id == user_id)
    return db.scalars(stmt.order_by(desc(Receipt.created_at), desc(Receipt.id))).all()


@router.get("/stats", response_model=AdminStatsOut)
def stats(db: Session = Depends(get_db), p=Depends(require_admin)):
    rollup = admin_rollup(
        users=list(db.scalars(select(AppUser)).all()),
        properties=list(db.scalars(select(Property)).all()),
        maintenance_records=list(db.scalars(select(MaintenanceRecord)).all()),
        subscriptions=list(db.scalars(select(Subscription)).all()),
        receipts=list(db.scalars(select(Receipt)).all()),
    )
    return rollup.as_dict()


@router.post("/notifications", status_code=201)
def post_system_notice(payload: SystemNoticeIn, db: Session = Depends(get_db), p=Depends(require_admin)):
    rows = send_system_notice(db, title=payload.title, message=payload.message, user_id=payload.user_id)
    audit_write(
        db,
        actor_user_id=p.user_id,
        action="admin.notification.send",
        entity_type="Notification",
        entity_id=payload.user_id or "all",
        after={"title": payload.title, "recipients": len(rows)},
    )
    db.commit()
    return {"ok": True, "created": len(rows)}
