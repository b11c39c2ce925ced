from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: float = Field(default=0, ge=0)
    buying_price: float = Field(default=0, ge=0)
    selling_price: float = Field(default=0, ge=0)
    wholesale_price: float = Field(default=0, ge=0)
    mrp: float = Field(default=0, ge=0)
    discount_percentage: float = Field(default=0, ge=0, le=100)
    unit: str = Field(default="pcs", min_length=1)
    tax_rate: float = Field(default=0, ge=0)
    barcode: str | None = None
    supplier: str | None = None


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    quantity: float | None = Field(None, ge=0)
    buying_price: float | None = Field(None, ge=0)
    selling_price: float | None = Field(None, ge=0)
    wholesale_price: float | None = Field(None, ge=0)
    mrp: float | None = Field(None, ge=0)
    discount_percentage: float | None = Field(None, ge=0, le=100)
    unit: str | None = Field(None, min_length=1)
    tax_rate: float | None = Field(None, ge=0)
    barcode: str | None = None
    supplier: str | None = None


class ProductRead(ProductBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProductPage(BaseModel):
    products: list[ProductRead] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    limit: int = 0
    total_pages: int = 1
