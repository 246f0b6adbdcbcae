from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session

from ..auth import Principal
from ..models import AppUser, MaintenanceRecord, Notification, Property, Subscription

log = logging.getLogger("equitystek.notifications")


def notify(
    db: Session,
    *,
    user_id: int,
    type: str,
    title: str,
    message: str,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[int] = None,
) -> Notification:
    """Adds the row without committing; it rides on the caller's transaction."""
    row = Notification(
        user_id=int(user_id),
        type=type,
        title=title,
        message=message,
        is_read=False,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        created_at=datetime.utcnow(),
    )
    db.add(row)
    return row


def _where(prop: Property) -> str:
    return prop.address or f"Property {prop.id}"


def notify_valuation_update(db: Session, prop: Property, value: Decimal) -> Notification:
    return notify(
        db,
        user_id=prop.user_id,
        type="valuation_update",
        title="Property Valuation Update",
        message=f"A new valuation has been calculated for your property at {_where(prop)}. "
        f"New estimated value: ${value:,.2f}",
        related_entity_type="property",
        related_entity_id=int(prop.id),
    )


def notify_maintenance_completed(db: Session, prop: Property, record: MaintenanceRecord) -> Notification:
    return notify(
        db,
        user_id=prop.user_id,
        type="maintenance_completed",
        title="Maintenance Completed",
        message=f"Maintenance task has been marked as completed for {_where(prop)}. Category: {record.category}",
        related_entity_type="maintenance",
        related_entity_id=int(record.id),
    )


def notify_property_update(db: Session, prop: Property, update_type: str) -> Notification:
    return notify(
        db,
        user_id=prop.user_id,
        type="property_update",
        title="Property Update",
        message=f"An update has been made to your property at {_where(prop)}. Update type: {update_type}",
        related_entity_type="property",
        related_entity_id=int(prop.id),
    )


def notify_subscription_renewal(
    db: Session, sub: Subscription, renews_at: datetime, now: Optional[datetime] = None
) -> Notification:
    days = max(0, (renews_at - (now or datetime.utcnow())).days)
    return notify(
        db,
        user_id=sub.user_id,
        type="subscription_renewal",
        title="Subscription Renewal",
        message=f"Your subscription will renew in {days} days. Please ensure your payment method is up to date.",
        related_entity_type="subscription",
        related_entity_id=int(sub.id),
    )


def send_system_notice(db: Session, *, title: str, message: str, user_id: Optional[int] = None) -> list[Notification]:
    if user_id is not None:
        user = db.get(AppUser, user_id)
        if user is None:
            raise HTTPException(status_code=404, detail="user not found")
        recipients = [int(user.id)]
    else:
        recipients = list(db.scalars(select(AppUser.id).where(AppUser.is_active.is_(True))).all())

    rows = [notify(db, user_id=uid, type="system_notice", title=title, message=message) for uid in recipients]
    log.info("system notice queued for %d users", len(rows), extra={"event_type": "system_notice"})
    return rows


def list_for_user(db: Session, user_id: int, *, unread_only: bool = False) -> list[Notification]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    return list(db.scalars(stmt.order_by(desc(Notification.created_at), desc(Notification.id))).all())


def unread_count(db: Session, user_id: int) -> int:
    return int(
        db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id, Notification.is_read.is_(False)
            )
        )
        or 0
    )


def must_get_notification(db: Session, *, p: Principal, notification_id: int) -> Notification:
    row = db.get(Notification, notification_id)
    # someone else's notification reads as missing
    if row is None or int(row.user_id) != int(p.user_id):
        raise HTTPException(status_code=404, detail="notification not found")
    return row


def mark_all_read(db: Session, user_id: int) -> int:
    res = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    return int(res.rowcount or 0)
