from __future__ import annotations

import base64
import hashlib
import hmac
import json
import secrets
import time
import uuid
from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.models.user import User


@dataclass
class SessionUser:
    user_id: str
    email: str
    role: str


@dataclass(frozen=True)
class BusinessProfile:
    """The acting user's own business details, copied onto their side of an invoice."""

    user_id: uuid.UUID
    name: str
    address: str
    gst: str | None
    contact: str

    @classmethod
    def from_user(cls, user: User) -> "BusinessProfile":
        return cls(
            user_id=user.id,
            name=user.business_name,
            address=user.business_address,
            gst=user.business_gst,
            contact=user.business_contact,
        )


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(token: str) -> bytes:
    padding = "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode((token + padding).encode("ascii"))


def hash_password(password: str, salt: str | None = None) -> tuple[str, str]:
    password = (password or "").strip()
    if not password:
        raise ValueError("Password cannot be empty")
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), 120_000)
    return digest.hex(), salt


def verify_password(password: str, expected_hash: str, salt: str) -> bool:
    try:
        calculated, _ = hash_password(password, salt=salt)
    except ValueError:
        return False
    return hmac.compare_digest(calculated, expected_hash)


def create_session_token(*, user_id: str, email: str, role: str) -> str:
    now = int(time.time())
    exp = now + int(settings.auth_session_hours * 3600)
    payload = {"uid": user_id, "eml": email, "rol": role, "iat": now, "exp": exp}
    payload_json = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    payload_b64 = _b64url_encode(payload_json)
    sig = hmac.new(settings.auth_secret.encode("utf-8"), payload_b64.encode("utf-8"), hashlib.sha256).hexdigest()
    return payload_b64 + "." + sig


def parse_session_token(token: str | None) -> SessionUser | None:
    if not token or "." not in token:
        return None
    payload_b64, sig = token.split(".", 1)
    expected_sig = hmac.new(
        settings.auth_secret.encode("utf-8"), payload_b64.encode("utf-8"), hashlib.sha256
    ).hexdigest()
    if not hmac.compare_digest(sig, expected_sig):
        return None
    try:
        payload = json.loads(_b64url_decode(payload_b64).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    if int(payload.get("exp", 0)) <= int(time.time()):
        return None
    uid = str(payload.get("uid", "")).strip()
    email = str(payload.get("eml", "")).strip()
    if not uid or not email:
        return None
    return SessionUser(user_id=uid, email=email, role=str(payload.get("rol") or "ADMIN"))


def get_current_user(request: Request) -> SessionUser:
    user = getattr(request.state, "user", None)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def get_business_profile(
    current: SessionUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BusinessProfile:
    try:
        user_id = uuid.UUID(current.user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required") from None
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return BusinessProfile.from_user(user)
