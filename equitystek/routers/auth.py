from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import create_access_token, get_principal, hash_password, verify_password
from ..config import settings
from ..db import get_db
from ..domain.audit import audit_write
from ..models import AppUser
from ..schemas import LoginIn, RegisterIn, TokenOut, UserOut

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.jwt_cookie_name,
        token,
        httponly=True,
        secure=bool(settings.jwt_cookie_secure),
        samesite=str(settings.jwt_cookie_samesite),
        max_age=int(settings.jwt_exp_minutes) * 60,
        path="/",
    )


@router.post("/register", response_model=TokenOut, status_code=201)
def register(payload: RegisterIn, response: Response, db: Session = Depends(get_db)):
    existing = db.scalar(select(AppUser).where(AppUser.email == payload.email))
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    u = AppUser(
        email=payload.email,
        full_name=payload.full_name or payload.email.split("@")[0],
        role=payload.role,
        password_hash=hash_password(payload.password),
        specialty_type=payload.specialty_type,
        license_number=payload.license_number,
        created_at=datetime.utcnow(),
        last_login_at=datetime.utcnow(),
    )
    db.add(u)
    db.flush()
    audit_write(db, actor_user_id=u.id, action="user.register", entity_type="AppUser", entity_id=u.id, after={"role": u.role})
    db.commit()

    token = create_access_token(user_id=int(u.id), role=str(u.role))
    _set_auth_cookie(response, token)
    return TokenOut(access_token=token, user_id=int(u.id), role=str(u.role))


@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, response: Response, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    user = db.scalar(select(AppUser).where(AppUser.email == email))
    if user is None or not user.password_hash or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_password(payload.password, str(user.password_hash)):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user.last_login_at = datetime.utcnow()
    db.commit()

    token = create_access_token(user_id=int(user.id), role=str(user.role))
    _set_auth_cookie(response, token)
    return TokenOut(access_token=token, user_id=int(user.id), role=str(user.role))


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.jwt_cookie_name, path="/")
    return {"ok": True}


@router.get("/me", response_model=UserOut)
def me(db: Session = Depends(get_db), p=Depends(get_principal)):
    user = db.get(AppUser, p.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return user
