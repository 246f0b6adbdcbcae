from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..domain.audit import audit_write
from ..schemas import ValuationCreate, ValuationOut
from ..services.ownership import must_get_property
from ..services.valuation_service import append_valuation, latest_valuation, list_valuations

router = APIRouter(prefix="/valuations", tags=["valuations"])


@router.get("", response_model=list[ValuationOut])
def list_for_property(property_id: int = Query(...), db: Session = Depends(get_db), p=Depends(get_principal)):
    must_get_property(db, p=p, property_id=property_id)
    return list_valuations(db, property_id)


@router.get("/{property_id}/latest", response_model=ValuationOut)
def latest_for_property(property_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    must_get_property(db, p=p, property_id=property_id)
    row = latest_valuation(db, property_id)
    if row is None:
        raise HTTPException(status_code=404, detail="no valuations for property")
    return row


@router.post("", response_model=ValuationOut, status_code=201)
def create_valuation(payload: ValuationCreate, db: Session = Depends(get_db), p=Depends(get_principal)):
    prop = must_get_property(db, p=p, property_id=payload.property_id)
    row = append_valuation(
        db,
        prop,
        value=payload.value,
        method=payload.method,
        notes=payload.notes,
        valuation_date=payload.valuation_date,
    )
    audit_write(
        db,
        actor_user_id=p.user_id,
        action="valuation.create",
        entity_type="Valuation",
        entity_id=row.id,
        after={"property_id": prop.id, "value": row.value, "method": row.method},
    )
    db.commit()
    db.refresh(row)
    return row
