from __future__ import annotations

import math
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.models.invoice_item import InvoiceItem
from app.models.product import Product
from app.schemas.product import ProductCreate, ProductPage, ProductRead, ProductUpdate
from app.services.errors import ProductNotFound

router = APIRouter(prefix="/products", tags=["products"])


def _get_product(db: Session, product_id: UUID) -> Product:
    row = db.get(Product, product_id)
    if not row:
        err = ProductNotFound(product_id)
        raise HTTPException(status_code=err.status_code, detail=err.as_detail())
    return row


@router.get("", response_model=ProductPage)
def list_products(
    search: str | None = Query(None, description="Filter by name (substring, case-insensitive)"),
    low_stock: bool = Query(False, description="Only products below the low-stock threshold"),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
) -> ProductPage:
    conditions = []
    if search and search.strip():
        conditions.append(Product.name.ilike(f"%{search.strip()}%"))
    if low_stock:
        conditions.append(Product.quantity < settings.low_stock_threshold)

    count_q = select(func.count(Product.id))
    q = select(Product).order_by(Product.updated_at.desc(), Product.name)
    for cond in conditions:
        count_q = count_q.where(cond)
        q = q.where(cond)
    total = int(db.execute(count_q).scalar() or 0)
    if limit:
        q = q.offset((page - 1) * limit).limit(limit)
    rows = db.execute(q).scalars().all()
    return ProductPage(
        products=[ProductRead.model_validate(r) for r in rows],
        total_count=total,
        page=page,
        limit=limit or total,
        total_pages=max(1, math.ceil(total / limit)) if limit else 1,
    )


@router.post("", response_model=ProductRead, status_code=201)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)) -> ProductRead:
    row = Product(
        name=payload.name.strip(),
        quantity=payload.quantity,
        buying_price=payload.buying_price,
        selling_price=payload.selling_price,
        wholesale_price=payload.wholesale_price,
        mrp=payload.mrp,
        discount_percentage=payload.discount_percentage,
        unit=payload.unit.strip(),
        tax_rate=payload.tax_rate,
        barcode=(payload.barcode or "").strip() or None,
        supplier=(payload.supplier or "").strip() or None,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return ProductRead.model_validate(row)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: UUID, db: Session = Depends(get_db)) -> ProductRead:
    return ProductRead.model_validate(_get_product(db, product_id))


@router.patch("/{product_id}", response_model=ProductRead)
def update_product(product_id: UUID, payload: ProductUpdate, db: Session = Depends(get_db)) -> ProductRead:
    row = _get_product(db, product_id)
    data = payload.model_dump(exclude_unset=True)
    for key in ("name", "unit"):
        if key in data:
            if data[key] is None or not data[key].strip():
                raise HTTPException(status_code=400, detail=f"Product {key} is empty")
            data[key] = data[key].strip()
    for key in ("barcode", "supplier"):
        if key in data:
            data[key] = (data[key] or "").strip() or None
    for key, value in data.items():
        if value is None and key not in ("barcode", "supplier"):
            continue
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return ProductRead.model_validate(row)


@router.delete("/{product_id}", status_code=204)
def delete_product(product_id: UUID, db: Session = Depends(get_db)) -> None:
    row = _get_product(db, product_id)
    used = db.execute(select(InvoiceItem.id).where(InvoiceItem.product_id == product_id).limit(1)).first()
    if used:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete this product because it is used in invoices.",
        )
    db.delete(row)
    db.commit()
