"""
First-run data: a default user so the API can be logged into on an empty database.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.auth import hash_password
from app.core.config import settings
from app.models.user import User, UserRole

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def seed_admin_user_if_missing(session: "Session") -> int:
    """
    Ensure at least one user exists. Returns number of users created.
    """
    from sqlalchemy import func, select

    count = session.execute(select(func.count(User.id))).scalar()
    if count > 0:
        return 0
    password_hash, password_salt = hash_password(settings.seed_admin_password)
    session.add(
        User(
            name="Administrator",
            email=settings.seed_admin_email.strip().lower(),
            password_hash=password_hash,
            password_salt=password_salt,
            role=UserRole.SUPERADMIN,
            is_active=True,
            business_name=settings.seed_business_name,
            business_address=settings.seed_business_address,
            business_contact=settings.seed_business_contact,
        )
    )
    session.commit()
    return 1
