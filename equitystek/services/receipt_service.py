from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain.receipts import next_receipt_number, receipt_date_prefix
from ..models import Receipt

log = logging.getLogger("equitystek.receipts")

# a concurrent checkout can take the number we just read; re-read and try again
NUMBER_ATTEMPTS = 3


def generate_receipt_number(db: Session, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    prefix = receipt_date_prefix(now)
    existing = db.scalars(select(Receipt.receipt_number).where(Receipt.receipt_number.like(f"{prefix}-%"))).all()
    return next_receipt_number(now, existing)


def create_receipt(
    db: Session,
    *,
    user_id: int,
    amount: Decimal,
    currency: str,
    description: str,
    items: list[dict[str, Any]],
    subscription_id: Optional[int] = None,
    receipt_type: str = "subscription",
    payment_intent_id: Optional[str] = None,
    payment_method: str = "card",
    payment_status: str = "pending",
) -> Receipt:
    # flush the caller's pending work first so a retry only rolls back the receipt
    db.flush()
    for attempt in range(1, NUMBER_ATTEMPTS + 1):
        row = Receipt(
            user_id=int(user_id),
            subscription_id=subscription_id,
            receipt_number=generate_receipt_number(db),
            amount=amount,
            currency=currency,
            description=description,
            receipt_type=receipt_type,
            items=items,
            payment_method=payment_method,
            payment_intent_id=payment_intent_id,
            payment_status=payment_status,
            created_at=datetime.utcnow(),
        )
        try:
            with db.begin_nested():
                db.add(row)
                db.flush()
        except IntegrityError:
            log.warning("receipt number %s taken (attempt %d)", row.receipt_number, attempt)
            if attempt == NUMBER_ATTEMPTS:
                raise
            continue
        return row
