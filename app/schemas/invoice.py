from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.invoice import InvoiceStatus
from app.schemas.inventory import ReconciliationResult


class ProductPricingUpdate(BaseModel):
    """New list prices to store on the product when a purchase is booked into stock."""

    mrp: float | None = Field(default=None, gt=0)
    selling_price: float | None = Field(default=None, gt=0)
    wholesale_price: float | None = Field(default=None, gt=0)


class InvoiceItemBase(BaseModel):
    product_id: UUID
    product_name: str | None = None
    quantity: float = Field(..., gt=0)
    rate: float = Field(default=0, ge=0)
    discount: float = Field(default=0, ge=0, le=100)


class InvoiceItemCreate(InvoiceItemBase):
    update_product_pricing: ProductPricingUpdate | None = None


class InvoiceItemRead(InvoiceItemBase):
    id: UUID
    serial_number: int
    product_name: str
    amount: float

    model_config = {"from_attributes": True}


class CounterpartFields(BaseModel):
    sender_name: str | None = None
    sender_address: str | None = None
    sender_gst: str | None = None
    sender_contact: str | None = None
    receiver_name: str | None = None
    receiver_address: str | None = None
    receiver_gst: str | None = None
    receiver_contact: str | None = None


class InvoiceCreate(CounterpartFields):
    type: str = Field(..., description="PURCHASE or SALE")
    date: dt.date | None = None
    cgst_rate: float | None = Field(default=None, ge=0)
    sgst_rate: float | None = Field(default=None, ge=0)
    igst_rate: float | None = Field(default=None, ge=0)
    notes: str | None = None
    items: list[InvoiceItemCreate] = Field(default_factory=list)
    update_inventory: bool = Field(default=False, description="Reconcile stock right after creating the invoice")


class InvoiceUpdate(CounterpartFields):
    """
    With items: full update (items replaced, totals recomputed, counterpart re-filled).
    Without items: only date, notes and status are applied.
    """

    type: str | None = None
    status: str | None = None
    date: dt.date | None = None
    cgst_rate: float | None = Field(default=None, ge=0)
    sgst_rate: float | None = Field(default=None, ge=0)
    igst_rate: float | None = Field(default=None, ge=0)
    notes: str | None = None
    items: list[InvoiceItemCreate] | None = None


class InvoiceRead(BaseModel):
    id: UUID
    invoice_number: str
    type: str
    status: InvoiceStatus
    date: dt.date
    sender_name: str
    sender_address: str
    sender_gst: str | None = None
    sender_contact: str
    receiver_name: str
    receiver_address: str
    receiver_gst: str | None = None
    receiver_contact: str
    subtotal: float
    cgst_rate: float
    sgst_rate: float
    igst_rate: float
    cgst_amount: float = 0
    sgst_amount: float = 0
    igst_amount: float = 0
    tax_amount: float = 0
    total_amount: float = 0
    notes: str | None = None
    items: list[InvoiceItemRead] = Field(default_factory=list)
    pdf_url: str | None = None
    inventory_update: ReconciliationResult | None = None
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}
