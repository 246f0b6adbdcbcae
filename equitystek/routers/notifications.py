from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..auth import get_principal
from ..db import get_db
from ..schemas import NotificationOut, UnreadCountOut
from ..services.notifications import list_for_user, mark_all_read, must_get_notification, unread_count

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def list_notifications(
    unread_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    p=Depends(get_principal),
):
    return list_for_user(db, p.user_id, unread_only=unread_only)


@router.get("/unread-count", response_model=UnreadCountOut)
def get_unread_count(db: Session = Depends(get_db), p=Depends(get_principal)):
    return UnreadCountOut(count=unread_count(db, p.user_id))


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_notification(db, p=p, notification_id=notification_id)
    row.is_read = True
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.post("/read-all")
def read_all(db: Session = Depends(get_db), p=Depends(get_principal)):
    updated = mark_all_read(db, p.user_id)
    db.commit()
    return {"ok": True, "updated": updated}


@router.delete("/{notification_id}", status_code=204)
def delete_notification(notification_id: int, db: Session = Depends(get_db), p=Depends(get_principal)):
    row = must_get_notification(db, p=p, notification_id=notification_id)
    db.delete(row)
    db.commit()
    return Response(status_code=204)
