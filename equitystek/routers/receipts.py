from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..domain.receipts import render_receipt_html
from ..models import AppUser, Receipt
from ..schemas import ReceiptOut
from ..services.ownership import must_get_receipt

router = APIRouter(prefix="/receipts", tags=["receipts"])


@router.get("", response_model=list[ReceiptOut])
def list_receipts(db: Session = Depends(get_db), p=Depends(get_principal)):
    return db.scalars(
        select(Receipt).where(Receipt.user_id == p.user_id).order_by(desc(Receipt.created_at), desc(Receipt.id))
    ).all()


@router.get("/{receipt_id}", response_model=ReceiptOut)
def get_receipt(receipt_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    return must_get_receipt(db, p=p, receipt_id=receipt_id)


@router.get("/{receipt_id}/download", response_class=HTMLResponse)
def download_receipt(receipt_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_receipt(db, p=p, receipt_id=receipt_id)
    owner = db.get(AppUser, row.user_id)
    body = render_receipt_html(row, customer_email=owner.email if owner else None)
    return HTMLResponse(
        content=body,
        headers={"Content-Disposition": f'attachment; filename="receipt_{row.receipt_number}.html"'},
    )
