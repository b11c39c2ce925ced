from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.auth import (
    SessionUser,
    create_session_token,
    get_current_user,
    hash_password,
    verify_password,
)
from app.core.config import settings
from app.db.session import get_db
from app.models.user import User

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    email: str = Field(min_length=3, max_length=256, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=1, max_length=128)
    business_name: str = Field(min_length=1, max_length=256)
    business_address: str = Field(min_length=1)
    business_gst: str | None = Field(default=None, max_length=32)
    business_contact: str = Field(min_length=1, max_length=128)
    bank_details: str | None = None


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=256)
    password: str = Field(min_length=1, max_length=128)


class ProfilePatchRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=256)
    business_name: str | None = Field(default=None, min_length=1, max_length=256)
    business_address: str | None = Field(default=None, min_length=1)
    business_gst: str | None = Field(default=None, max_length=32)
    business_contact: str | None = Field(default=None, min_length=1, max_length=128)
    bank_details: str | None = None


def _user_payload(user: User) -> dict:
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "business": {
            "name": user.business_name,
            "address": user.business_address,
            "gst": user.business_gst,
            "contact": user.business_contact,
            "bank_details": user.bank_details,
        },
    }


def _load_user(db: Session, current: SessionUser) -> User:
    try:
        user = db.get(User, uuid.UUID(current.user_id))
    except ValueError:
        user = None
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> dict:
    email = payload.email.strip().lower()
    existing = db.execute(select(User).where(func.lower(User.email) == email)).scalars().first()
    if existing:
        raise HTTPException(status_code=400, detail="A user with this email already exists")
    password_hash, password_salt = hash_password(payload.password)
    user = User(
        name=payload.name.strip(),
        email=email,
        password_hash=password_hash,
        password_salt=password_salt,
        business_name=payload.business_name.strip(),
        business_address=payload.business_address.strip(),
        business_gst=(payload.business_gst or "").strip() or None,
        business_contact=payload.business_contact.strip(),
        bank_details=(payload.bank_details or "").strip() or None,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return {"ok": True, "user": _user_payload(user)}


@router.post("/login")
def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)) -> dict:
    email = payload.email.strip().lower()
    user = db.execute(select(User).where(func.lower(User.email) == email)).scalars().first()
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash, user.password_salt):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = create_session_token(user_id=str(user.id), email=user.email, role=user.role.value)
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.app_env.lower() == "prod",
        max_age=int(settings.auth_session_hours * 3600),
        path="/",
    )
    return {"ok": True, "user": _user_payload(user)}


@router.post("/logout")
def logout(response: Response) -> dict:
    response.delete_cookie(key=settings.auth_cookie_name, path="/")
    return {"ok": True}


@router.get("/me")
def me(current: SessionUser = Depends(get_current_user), db: Session = Depends(get_db)) -> dict:
    return {"authenticated": True, "user": _user_payload(_load_user(db, current))}


@router.patch("/profile")
def update_profile(
    payload: ProfilePatchRequest,
    db: Session = Depends(get_db),
    current: SessionUser = Depends(get_current_user),
) -> dict:
    """Edit the business profile; it is copied onto invoices created or fully updated afterwards."""
    user = _load_user(db, current)
    if payload.name is not None:
        user.name = payload.name.strip()
    if payload.business_name is not None:
        user.business_name = payload.business_name.strip()
    if payload.business_address is not None:
        user.business_address = payload.business_address.strip()
    if payload.business_gst is not None:
        user.business_gst = payload.business_gst.strip() or None
    if payload.business_contact is not None:
        user.business_contact = payload.business_contact.strip()
    if payload.bank_details is not None:
        user.bank_details = payload.bank_details.strip() or None
    db.commit()
    db.refresh(user)
    return {"ok": True, "user": _user_payload(user)}
