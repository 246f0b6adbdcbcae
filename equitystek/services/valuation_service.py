# equitystek/services/valuation_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.pricing import to_money
from ..domain.valuation_impact import creation_adjustment, maintenance_impact, update_adjustment
from ..models import MaintenanceRecord, Property, Valuation
from .notifications import notify_valuation_update

log = logging.getLogger("equitystek.valuation")


def latest_valuation(db: Session, property_id: int) -> Optional[Valuation]:
    return db.scalar(
        select(Valuation)
        .where(Valuation.property_id == property_id)
        .order_by(desc(Valuation.valuation_date), desc(Valuation.id))
        .limit(1)
    )


def list_valuations(db: Session, property_id: int) -> list[Valuation]:
    return list(
        db.scalars(
            select(Valuation)
            .where(Valuation.property_id == property_id)
            .order_by(desc(Valuation.valuation_date), desc(Valuation.id))
        ).all()
    )


def append_valuation(
    db: Session,
    prop: Property,
    *,
    value: Decimal,
    method: str,
    notes: Optional[str] = None,
    valuation_date: Optional[datetime] = None,
    maintenance_impact: Optional[Decimal] = None,
    maintenance_record_id: Optional[int] = None,
) -> Valuation:
    """
    Insert a valuation and move the property's current value with it.

    Both writes go into the caller's transaction. The property row carries a
    version counter, so two appends racing on the same property cannot both
    commit: the second flush raises StaleDataError.
    """
    when = valuation_date or datetime.utcnow()
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc).replace(tzinfo=None)
    current = latest_valuation(db, int(prop.id))

    row = Valuation(
        property_id=int(prop.id),
        value=to_money(value),
        method=method,
        notes=notes,
        valuation_date=when,
        maintenance_impact=to_money(maintenance_impact) if maintenance_impact is not None else None,
        maintenance_record_id=maintenance_record_id,
        created_at=datetime.utcnow(),
    )
    db.add(row)

    # a back-dated entry joins the history without becoming current
    if current is None or when >= current.valuation_date:
        prop.current_value = row.value
        prop.last_valuation_date = when
        db.add(prop)

    db.flush()
    return row


def _anchor(db: Session, prop: Property) -> tuple[Optional[Decimal], str, Optional[datetime]]:
    """Value to adjust from, where it came from, and the date of the row it came from."""
    last = latest_valuation(db, int(prop.id))
    if last is not None:
        return to_money(last.value), "valuation", last.valuation_date
    if prop.purchase_price is not None and to_money(prop.purchase_price) > 0:
        return to_money(prop.purchase_price), "purchase_price", None
    return None, "none", None


def _apply_delta(
    db: Session,
    prop: Property,
    record: MaintenanceRecord,
    delta: Decimal,
    *,
    note: str,
) -> Optional[Valuation]:
    anchor, source, anchor_date = _anchor(db, prop)
    if anchor is None:
        log.warning(
            "valuation adjustment skipped: property has no valuation or purchase price",
            extra={"property_id": prop.id, "maintenance_record_id": record.id},
        )
        return None

    if source == "purchase_price":
        note = f"{note} Based on purchase price (no prior valuation)."

    # never behind the anchor, or the new row would not become current
    when = datetime.utcnow()
    if anchor_date is not None and anchor_date > when:
        when = anchor_date

    v = append_valuation(
        db,
        prop,
        value=anchor + delta,
        method="automated",
        notes=note,
        valuation_date=when,
        maintenance_impact=delta,
        maintenance_record_id=int(record.id),
    )
    log.info(
        "valuation adjusted by %s", delta,
        extra={"property_id": prop.id, "maintenance_record_id": record.id},
    )
    notify_valuation_update(db, prop, v.value)
    return v


def apply_maintenance_created(db: Session, prop: Property, record: MaintenanceRecord) -> Optional[Valuation]:
    """Record must already be flushed so it has an id."""
    record.estimated_value_added = maintenance_impact(record.category, record.cost)

    impact = creation_adjustment(record.category, record.cost, settings.valuation_cost_threshold)
    if impact is None:
        return None

    note = f"Automatic adjustment for {record.category} maintenance: {record.title} (+${impact:,.2f})."
    return _apply_delta(db, prop, record, impact, note=note)


def apply_maintenance_updated(
    db: Session,
    prop: Property,
    record: MaintenanceRecord,
    *,
    old_category: str,
    old_cost: Decimal,
) -> Optional[Valuation]:
    """`record` already carries the new values; the old ones are passed in."""
    record.estimated_value_added = maintenance_impact(record.category, record.cost)

    delta = update_adjustment(
        old_category,
        old_cost,
        record.category,
        record.cost,
        settings.valuation_cost_threshold,
        settings.valuation_materiality_threshold,
    )
    if delta is None:
        return None

    sign = "+" if delta >= 0 else "-"
    note = f"Adjustment after update of {record.category} maintenance: {record.title} ({sign}${abs(delta):,.2f})."
    return _apply_delta(db, prop, record, delta, note=note)
