from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401 - register models with Base.metadata
from app.core.auth import BusinessProfile, hash_password
from app.db.base import Base
from app.models.product import Product
from app.models.user import User
from app.schemas.invoice import InvoiceCreate, InvoiceItemCreate


def make_session_factory() -> sessionmaker:
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False)


def make_user(db: Session, email: str = "owner@example.com", **overrides) -> User:
    password_hash, password_salt = hash_password("secret")
    values = {
        "name": "Owner",
        "email": email,
        "password_hash": password_hash,
        "password_salt": password_salt,
        "business_name": "Acme Traders",
        "business_address": "12 Market Road, Pune",
        "business_gst": "27ABCDE1234F1Z5",
        "business_contact": "+91 98000 00000",
    }
    values.update(overrides)
    user = User(**values)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_product(db: Session, name: str = "Widget", quantity: float = 10, buying_price: float = 40, **overrides) -> Product:
    product = Product(
        name=name,
        quantity=quantity,
        buying_price=buying_price,
        selling_price=overrides.pop("selling_price", 60),
        wholesale_price=overrides.pop("wholesale_price", 55),
        mrp=overrides.pop("mrp", 70),
        unit=overrides.pop("unit", "pcs"),
        **overrides,
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def profile_for(user: User) -> BusinessProfile:
    return BusinessProfile.from_user(user)


def sale_payload(*items: InvoiceItemCreate, **overrides) -> InvoiceCreate:
    values = {
        "type": "SALE",
        "receiver_name": "Bright Retail",
        "receiver_address": "4 Lake View, Mumbai",
        "receiver_contact": "+91 99000 11111",
        "items": list(items),
    }
    values.update(overrides)
    return InvoiceCreate(**values)


def purchase_payload(*items: InvoiceItemCreate, **overrides) -> InvoiceCreate:
    values = {
        "type": "PURCHASE",
        "sender_name": "Wholesale Depot",
        "sender_address": "88 Industrial Area, Nashik",
        "sender_contact": "+91 97000 22222",
        "items": list(items),
    }
    values.update(overrides)
    return InvoiceCreate(**values)


def line(product: Product, quantity: float, rate: float = 50, discount: float = 0, **extra) -> InvoiceItemCreate:
    return InvoiceItemCreate(product_id=product.id, quantity=quantity, rate=rate, discount=discount, **extra)
