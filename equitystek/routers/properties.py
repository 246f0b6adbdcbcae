from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..domain.audit import audit_write, snapshot
from ..models import Property
from ..schemas import PropertyCreate, PropertyOut, PropertyUpdate
from ..services.notifications import notify_property_update
from ..services.ownership import must_get_property
from ..services.subscription_service import enforce_property_allowance, resync_subscription
from ..services.valuation_service import append_valuation

router = APIRouter(prefix="/properties", tags=["properties"])

_AUDIT_FIELDS = ("address", "city", "state", "zip_code", "property_type", "purchase_price", "current_value", "is_active")


@router.get("", response_model=list[PropertyOut])
def list_properties(
    include_inactive: bool = Query(default=False),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    stmt = select(Property).where(Property.user_id == p.user_id)
    if not include_inactive:
        stmt = stmt.where(Property.is_active.is_(True))
    return db.scalars(stmt.order_by(desc(Property.id))).all()


@router.post("", response_model=PropertyOut, status_code=201)
def create_property(payload: PropertyCreate, db: Session = Depends(get_db), p=Depends(get_principal)):
    enforce_property_allowance(db, p.user_id)

    data = payload.model_dump(exclude={"current_value"})
    row = Property(**data)
    row.user_id = p.user_id
    row.current_value = payload.purchase_price
    row.created_at = datetime.utcnow()
    db.add(row)
    db.flush()

    if payload.current_value is not None:
        append_valuation(db, row, value=payload.current_value, method="owner_estimate", notes="Initial owner estimate")

    resync_subscription(db, p.user_id)
    audit_write(
        db,
        actor_user_id=p.user_id,
        action="property.create",
        entity_type="Property",
        entity_id=row.id,
        after=snapshot(row, _AUDIT_FIELDS),
    )
    db.commit()
    db.refresh(row)
    return row


@router.get("/{property_id}", response_model=PropertyOut)
def get_property(property_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_property(db, p=p, property_id=property_id)


@router.put("/{property_id}", response_model=PropertyOut)
def update_property(property_id: int, payload: PropertyUpdate, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_property(db, p=p, property_id=property_id)
    before = snapshot(row, _AUDIT_FIELDS)

    changes = payload.model_dump(exclude_unset=True)
    new_value = changes.pop("current_value", None)
    notes = changes.pop("valuation_notes", None)
    active = changes.pop("is_active", None)

    for k, v in changes.items():
        setattr(row, k, v)

    count_changed = False
    if active is not None and bool(active) != bool(row.is_active):
        if active:
            enforce_property_allowance(db, row.user_id)
        row.is_active = bool(active)
        count_changed = True

    if new_value is not None:
        append_valuation(db, row, value=new_value, method="owner_estimate", notes=notes or "Owner estimate")

    db.add(row)
    if count_changed:
        resync_subscription(db, row.user_id)

    # owners hear about changes made on their behalf
    touched = sorted(payload.model_dump(exclude_unset=True))
    if touched and int(row.user_id) != int(p.user_id):
        notify_property_update(db, row, ", ".join(touched))

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="property.update",
        entity_type="Property",
        entity_id=row.id,
        before=before,
        after=snapshot(row, _AUDIT_FIELDS),
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{property_id}")
def delete_property(property_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_property(db, p=p, property_id=property_id)
    owner_id = int(row.user_id)
    before = snapshot(row, _AUDIT_FIELDS)

    # cascades to maintenance records and valuations
    db.delete(row)
    db.flush()

    resync_subscription(db, owner_id)
    audit_write(
        db,
        actor_user_id=p.user_id,
        action="property.delete",
        entity_type="Property",
        entity_id=property_id,
        before=before,
    )
    db.commit()
    return {"ok": True, "deleted": property_id}
