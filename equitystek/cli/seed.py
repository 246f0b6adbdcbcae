from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from equitystek.auth import hash_password
from equitystek.db import SessionLocal
from equitystek.models import AppUser, Property, SubscriptionPlan
from equitystek.services.subscription_service import ensure_default_plans
from equitystek.services.valuation_service import append_valuation


@dataclass(frozen=True)
class SeedResult:
    plans: list[str]
    user_email: Optional[str]
    property_id: Optional[int]


def _get_or_create_user(db: Session, email: str, full_name: str, password: Optional[str]) -> AppUser:
    row = db.scalar(select(AppUser).where(AppUser.email == email))
    if row:
        return row
    row = AppUser(
        email=email,
        full_name=full_name,
        role="owner",
        password_hash=hash_password(password) if password else None,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _sample_property(db: Session, user: AppUser) -> Property:
    existing = db.scalar(select(Property).where(Property.user_id == user.id).order_by(Property.id))
    if existing:
        return existing
    prop = Property(
        user_id=int(user.id),
        address="742 Evergreen Terrace",
        city="Springfield",
        state="IL",
        zip_code="62704",
        property_type="single_family",
        bedrooms=3,
        bathrooms=2.0,
        square_feet=1850,
        year_built=1989,
        lot_size=0.25,
        purchase_price=Decimal("325000.00"),
        purchase_date=date(2019, 6, 14),
        current_value=Decimal("325000.00"),
    )
    db.add(prop)
    db.flush()
    append_valuation(db, prop, value=Decimal("410000.00"), method="owner_estimate", notes="Seeded owner estimate")
    db.commit()
    db.refresh(prop)
    return prop


def seed(
    *,
    user_email: Optional[str] = None,
    user_name: str = "Demo Owner",
    password: Optional[str] = None,
    create_sample_property: bool = True,
) -> SeedResult:
    db = SessionLocal()
    try:
        ensure_default_plans(db)
        codes = [p.code for p in db.scalars(select(SubscriptionPlan).order_by(SubscriptionPlan.base_price)).all()]

        if not user_email:
            return SeedResult(plans=codes, user_email=None, property_id=None)

        user = _get_or_create_user(db, user_email.strip().lower(), user_name, password)
        prop_id = int(_sample_property(db, user).id) if create_sample_property else None
        return SeedResult(plans=codes, user_email=user.email, property_id=prop_id)
    finally:
        db.close()
