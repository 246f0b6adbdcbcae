from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import get_principal, require_tradesperson
from ..db import get_db
from ..domain.audit import audit_write, snapshot
from ..models import MaintenanceRecord, Property
from ..schemas import MaintenanceCreate, MaintenanceOut, MaintenanceUpdate
from ..services.ownership import get_property_or_404, must_get_maintenance, must_get_property, must_own_maintenance
from ..services.notifications import notify_maintenance_completed
from ..services.valuation_service import apply_maintenance_created, apply_maintenance_updated

router = APIRouter(prefix="/maintenance", tags=["maintenance"])
tradesperson_router = APIRouter(prefix="/tradesperson", tags=["tradesperson"])

_AUDIT_FIELDS = ("title", "category", "cost", "completion_date", "status", "estimated_value_added")
_REQUIRED = ("title", "description", "category", "cost", "completion_date", "status", "priority", "receipt_urls", "image_urls")


def _json_parts(payload: MaintenanceCreate | MaintenanceUpdate, fields: dict[str, Any]) -> dict[str, Any]:
    # nested models are stored as JSON columns
    if "contractor" in fields:
        fields["contractor"] = payload.contractor.model_dump(mode="json") if payload.contractor else None
    if "warranty" in fields:
        fields["warranty"] = payload.warranty.model_dump(mode="json") if payload.warranty else None
    return fields


@router.get("", response_model=list[MaintenanceOut])
def list_records(
    property_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    stmt = select(MaintenanceRecord).where(MaintenanceRecord.is_active.is_(True))
    if property_id is not None:
        must_get_property(db, p=p, property_id=property_id)
        stmt = stmt.where(MaintenanceRecord.property_id == property_id)
    else:
        stmt = stmt.join(Property, Property.id == MaintenanceRecord.property_id).where(Property.user_id == p.user_id)
    return db.scalars(stmt.order_by(desc(MaintenanceRecord.completion_date), desc(MaintenanceRecord.id))).all()


@router.post("", response_model=MaintenanceOut, status_code=201)
def create_record(payload: MaintenanceCreate, db: Session = Depends(get_db), p=Depends(get_principal)):
    if p.role == "tradesperson":
        # tradespeople log work on client properties they do not own
        prop = get_property_or_404(db, property_id=payload.property_id)
    else:
        prop = must_get_property(db, p=p, property_id=payload.property_id)

    fields = _json_parts(payload, payload.model_dump())
    row = MaintenanceRecord(**fields)
    if p.role == "tradesperson":
        row.tradesperson_id = p.user_id
    row.created_at = datetime.utcnow()
    db.add(row)
    db.flush()

    apply_maintenance_created(db, prop, row)
    if row.tradesperson_id is not None and row.status == "completed":
        notify_maintenance_completed(db, prop, row)

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="maintenance.create",
        entity_type="MaintenanceRecord",
        entity_id=row.id,
        after=snapshot(row, _AUDIT_FIELDS),
    )
    db.commit()
    db.refresh(row)
    return row


@router.get("/{record_id}", response_model=MaintenanceOut)
def get_record(record_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_maintenance(db, p=p, record_id=record_id)


@router.put("/{record_id}", response_model=MaintenanceOut)
def update_record(record_id: int, payload: MaintenanceUpdate, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_own_maintenance(db, p=p, record_id=record_id)
    before = snapshot(row, _AUDIT_FIELDS)

    # captured before mutation; the adjustment is a diff against these
    old_category = row.category
    old_cost = row.cost

    changes = _json_parts(payload, payload.model_dump(exclude_unset=True))
    for k, v in changes.items():
        if v is None and k in _REQUIRED:
            continue
        setattr(row, k, v)
    db.add(row)

    apply_maintenance_updated(db, row.property, row, old_category=old_category, old_cost=old_cost)

    audit_write(
        db,
        actor_user_id=p.user_id,
        action="maintenance.update",
        entity_type="MaintenanceRecord",
        entity_id=row.id,
        before=before,
        after=snapshot(row, _AUDIT_FIELDS),
    )
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{record_id}")
def delete_record(record_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_own_maintenance(db, p=p, record_id=record_id)
    row.is_active = False
    db.add(row)
    audit_write(
        db,
        actor_user_id=p.user_id,
        action="maintenance.delete",
        entity_type="MaintenanceRecord",
        entity_id=row.id,
        before=snapshot(row, _AUDIT_FIELDS),
    )
    db.commit()
    return {"ok": True, "deleted": record_id}


@tradesperson_router.get("/work-records", response_model=list[MaintenanceOut])
def my_work_records(db: Session = Depends(get_db), p=Depends(require_tradesperson)):
    return db.scalars(
        select(MaintenanceRecord)
        .where(MaintenanceRecord.tradesperson_id == p.user_id, MaintenanceRecord.is_active.is_(True))
        .order_by(desc(MaintenanceRecord.completion_date), desc(MaintenanceRecord.id))
    ).all()
