from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt  # PyJWT
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models import AppUser

ROLES = ("owner", "tradesperson", "investor", "admin")

PBKDF2_ITERS = 210_000


@dataclass(frozen=True)
class Principal:
    user_id: int
    email: str
    role: str  # owner | tradesperson | investor | admin

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERS)
    return f"pbkdf2_sha256${PBKDF2_ITERS}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    salt = base64.b64decode(salt_b64.encode())
    dk = base64.b64decode(dk_b64.encode())
    test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(iters_s))
    return hmac.compare_digest(test, dk)


# -------------------------
# JWT helpers
# -------------------------
def create_access_token(*, user_id: int, role: str, minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    exp_minutes = int(minutes if minutes is not None else settings.jwt_exp_minutes)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": str(role),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=exp_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def _get_user_by_email(db: Session, email: str) -> AppUser | None:
    return db.scalar(select(AppUser).where(AppUser.email == email))


# -------------------------
# get_principal
# -------------------------
def get_principal(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> Principal:
    """
    Auth modes supported (in priority order):
      1) JWT cookie (HttpOnly) OR Authorization: Bearer <token>
      2) dev header spoofing (ONLY if settings.auth_mode == "dev")
    """
    token = request.cookies.get(settings.jwt_cookie_name) if settings.jwt_cookie_name else None
    if not token and authorization and str(authorization).lower().startswith("bearer "):
        token = str(authorization).split(" ", 1)[1].strip()

    if token:
        claims = decode_access_token(token)
        sub = str(claims.get("sub") or "")
        if not sub.isdigit():
            raise HTTPException(status_code=401, detail="Token missing sub")

        user = db.get(AppUser, int(sub))
        if user is None or not user.is_active:
            raise HTTPException(status_code=401, detail="Unknown user")
        return Principal(user_id=int(user.id), email=str(user.email), role=str(user.role))

    if settings.auth_mode == "dev":
        email = (request.headers.get(settings.dev_header_user_email) or "").strip().lower()
        role_hint = (request.headers.get(settings.dev_header_user_role) or "owner").strip().lower()
        if not email:
            raise HTTPException(status_code=401, detail="Not authenticated")

        user = _get_user_by_email(db, email=email)
        if user is None and settings.dev_auto_provision:
            user = AppUser(
                email=email,
                full_name=email.split("@")[0],
                role=role_hint if role_hint in ROLES else "owner",
                created_at=datetime.utcnow(),
            )
            db.add(user)
            db.commit()
            db.refresh(user)

        if user is None or not user.is_active:
            raise HTTPException(status_code=401, detail="Dev auth could not provision user")

        return Principal(user_id=int(user.id), email=str(user.email), role=str(user.role))

    raise HTTPException(status_code=401, detail="Not authenticated")


def require_admin(p: Principal = Depends(get_principal)) -> Principal:
    if not p.is_admin:
        raise HTTPException(status_code=403, detail="Requires admin role")
    return p


def require_tradesperson(p: Principal = Depends(get_principal)) -> Principal:
    if p.role not in ("tradesperson", "admin"):
        raise HTTPException(status_code=403, detail="Requires tradesperson role")
    return p
