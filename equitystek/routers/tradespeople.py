from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import get_principal, require_tradesperson
from ..db import get_db
from ..models import AppUser, Property
from ..schemas import PropertySummaryOut, TradespersonOut

router = APIRouter(tags=["tradesperson"])


@router.get("/tradespeople", response_model=list[TradespersonOut])
def list_tradespeople(
    specialty: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    """Directory owners pick from when assigning work."""
    stmt = select(AppUser).where(AppUser.role == "tradesperson", AppUser.is_active.is_(True))
    if specialty:
        stmt = stmt.where(AppUser.specialty_type == specialty)
    return db.scalars(stmt.order_by(AppUser.full_name, AppUser.id)).all()


@router.get("/tradesperson/properties", response_model=list[PropertySummaryOut])
def properties_for_tradesperson(db: Session = Depends(get_db), p=Depends(require_tradesperson)):
    # address-level summary only; valuations and purchase data stay with the owner
    return db.scalars(select(Property).where(Property.is_active.is_(True)).order_by(Property.id)).all()
