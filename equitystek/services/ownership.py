# equitystek/services/ownership.py
from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..models import MaintenanceRecord, Property, Receipt


def _check_owner(p: Principal, owner_id: int) -> None:
    # non-owners are treated as unauthenticated for the resource
    if not p.is_admin and int(owner_id) != int(p.user_id):
        raise HTTPException(status_code=401, detail="Not authorized for this resource")


def get_property_or_404(db: Session, *, property_id: int) -> Property:
    row = db.get(Property, property_id)
    if not row:
        raise HTTPException(status_code=404, detail="property not found")
    return row


def must_get_property(db: Session, *, p: Principal, property_id: int) -> Property:
    row = get_property_or_404(db, property_id=property_id)
    _check_owner(p, row.user_id)
    return row


def must_get_maintenance(db: Session, *, p: Principal, record_id: int) -> MaintenanceRecord:
    row = db.scalar(
        select(MaintenanceRecord).where(MaintenanceRecord.id == record_id, MaintenanceRecord.is_active.is_(True))
    )
    if not row:
        raise HTTPException(status_code=404, detail="maintenance record not found")

    # the tradesperson who logged the work may read it
    if row.tradesperson_id is not None and int(row.tradesperson_id) == int(p.user_id):
        return row
    _check_owner(p, row.property.user_id)
    return row


def must_own_maintenance(db: Session, *, p: Principal, record_id: int) -> MaintenanceRecord:
    row = db.scalar(
        select(MaintenanceRecord).where(MaintenanceRecord.id == record_id, MaintenanceRecord.is_active.is_(True))
    )
    if not row:
        raise HTTPException(status_code=404, detail="maintenance record not found")
    _check_owner(p, row.property.user_id)
    return row


def must_get_receipt(db: Session, *, p: Principal, receipt_id: int) -> Receipt:
    row = db.get(Receipt, receipt_id)
    if not row:
        raise HTTPException(status_code=404, detail="receipt not found")
    _check_owner(p, row.user_id)
    return row
