from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.auth import BusinessProfile
from app.core.config import settings
from app.models.invoice import INVOICE_TYPE_ALIASES, Invoice, InvoiceStatus, InvoiceType
from app.models.invoice_item import InvoiceItem
from app.models.product import Product
from app.schemas.inventory import ReconciliationResult
from app.schemas.invoice import CounterpartFields, InvoiceCreate, InvoiceItemCreate, InvoiceUpdate
from app.services.errors import InvalidInvoiceType, InvoiceNotFound, StorageFailure, ValidationFailure
from app.services.inventory_service import InventoryReconciler

logger = logging.getLogger("app.invoices")

INVOICE_NUMBER_PREFIX = {
    InvoiceType.PURCHASE.value: "BIL",
    InvoiceType.SALE.value: "SIL",
}
COUNTERPART_FIELDS = ("name", "address", "gst", "contact")
REQUIRED_COUNTERPART_FIELDS = ("name", "address", "contact")


@dataclass
class TaxBreakdown:
    subtotal: float
    cgst_amount: float
    sgst_amount: float
    igst_amount: float

    @property
    def tax_amount(self) -> float:
        return self.cgst_amount + self.sgst_amount + self.igst_amount

    @property
    def total_amount(self) -> float:
        return self.subtotal + self.tax_amount


def calculate_line_amount(quantity: float, rate: float, discount: float = 0) -> float:
    """amount = quantity * rate * (1 - discount/100); no rounding."""
    return float(quantity) * float(rate) * (1 - float(discount or 0) / 100)


def compute_tax_breakdown(subtotal: float, cgst_rate: float, sgst_rate: float, igst_rate: float) -> TaxBreakdown:
    base = float(subtotal or 0)
    return TaxBreakdown(
        subtotal=base,
        cgst_amount=base * float(cgst_rate or 0) / 100,
        sgst_amount=base * float(sgst_rate or 0) / 100,
        igst_amount=base * float(igst_rate or 0) / 100,
    )


def normalize_invoice_type(raw: str | None) -> str:
    v = (raw or "").strip().upper()
    v = INVOICE_TYPE_ALIASES.get(v, v)
    if v not in INVOICE_NUMBER_PREFIX:
        raise InvalidInvoiceType(raw)
    return v


def normalize_status(raw: str | None) -> InvoiceStatus:
    v = (raw or "").strip().upper()
    try:
        return InvoiceStatus(v)
    except ValueError:
        raise ValidationFailure("Invalid invoice status. Use DRAFT, FINALIZED, PAID or CANCELLED.") from None


def next_invoice_number(invoice_type: str, existing_numbers: Iterable[str]) -> str:
    """BIL-001, BIL-002, ... per type; continues after the highest number already issued."""
    prefix = INVOICE_NUMBER_PREFIX[invoice_type]
    pattern = re.compile(rf"^{prefix}-(\d+)$")
    highest = 0
    for number in existing_numbers:
        m = pattern.match((number or "").strip())
        if m:
            highest = max(highest, int(m.group(1)))
    return f"{prefix}-{highest + 1:03d}"


def counterpart_side(invoice_type: str) -> str:
    """The side of the invoice that belongs to the other party."""
    return "sender" if invoice_type == InvoiceType.PURCHASE.value else "receiver"


def own_side(invoice_type: str) -> str:
    return "receiver" if invoice_type == InvoiceType.PURCHASE.value else "sender"


def apply_counterpart_autofill(invoice: Invoice, invoice_type: str, profile: BusinessProfile) -> None:
    """Sales carry the user's business as sender, purchases as receiver."""
    side = own_side(invoice_type)
    setattr(invoice, f"{side}_name", profile.name)
    setattr(invoice, f"{side}_address", profile.address)
    setattr(invoice, f"{side}_gst", profile.gst)
    setattr(invoice, f"{side}_contact", profile.contact)


def _apply_counterpart_patch(invoice: Invoice, payload: CounterpartFields, invoice_type: str) -> None:
    side = counterpart_side(invoice_type)
    for field in COUNTERPART_FIELDS:
        value = getattr(payload, f"{side}_{field}")
        if value is None:
            continue
        value = value.strip()
        if field == "gst":
            value = value or None
        setattr(invoice, f"{side}_{field}", value)


def _require_counterpart(payload: CounterpartFields, invoice_type: str) -> None:
    side = counterpart_side(invoice_type)
    missing = [
        f"{side}_{field}" for field in REQUIRED_COUNTERPART_FIELDS if not (getattr(payload, f"{side}_{field}") or "").strip()
    ]
    if missing:
        raise ValidationFailure(f"Missing required fields: {', '.join(missing)}")


def _clean(text: str | None) -> str | None:
    return (text or "").strip() or None


class InvoiceService:
    """Creates and edits invoices for one acting user; their business profile is passed in explicitly."""

    def __init__(self, db: Session, profile: BusinessProfile):
        self.db = db
        self.profile = profile

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("invoice_commit_failed user=%s", self.profile.user_id)
            raise StorageFailure(f"Failed to save invoice: {e}") from e

    def get(self, invoice_id: UUID) -> Invoice:
        row = (
            self.db.execute(
                select(Invoice)
                .where(Invoice.id == invoice_id, Invoice.user_id == self.profile.user_id)
                .options(selectinload(Invoice.items))
            )
            .scalars()
            .one_or_none()
        )
        if row is None:
            raise InvoiceNotFound(invoice_id)
        return row

    def list_invoices(self, invoice_type: str | None = None, status: str | None = None) -> list[Invoice]:
        q = (
            select(Invoice)
            .where(Invoice.user_id == self.profile.user_id)
            .options(selectinload(Invoice.items))
            .order_by(Invoice.date.desc(), Invoice.created_at.desc())
        )
        if invoice_type:
            q = q.where(Invoice.type == normalize_invoice_type(invoice_type))
        if status:
            q = q.where(Invoice.status == normalize_status(status))
        return list(self.db.execute(q).scalars().all())

    def _next_number(self, invoice_type: str) -> str:
        numbers = self.db.execute(select(Invoice.invoice_number).where(Invoice.type == invoice_type)).scalars().all()
        return next_invoice_number(invoice_type, numbers)

    def _build_items(self, payload_items: list[InvoiceItemCreate]) -> tuple[list[InvoiceItem], float]:
        if not payload_items:
            raise ValidationFailure("At least one item is required")
        rows: list[InvoiceItem] = []
        subtotal = 0.0
        for serial, raw in enumerate(payload_items, start=1):
            product = self.db.get(Product, raw.product_id)
            if product is None:
                raise ValidationFailure(f"Product with ID {raw.product_id} not found")
            amount = calculate_line_amount(raw.quantity, raw.rate, raw.discount)
            subtotal += amount
            rows.append(
                InvoiceItem(
                    serial_number=serial,
                    product_id=product.id,
                    product_name=(raw.product_name or "").strip() or product.name,
                    quantity=float(raw.quantity),
                    rate=float(raw.rate),
                    discount=float(raw.discount or 0),
                    amount=amount,
                )
            )
        return rows, subtotal

    def create(self, payload: InvoiceCreate) -> tuple[Invoice, ReconciliationResult | None]:
        invoice_type = normalize_invoice_type(payload.type)
        _require_counterpart(payload, invoice_type)
        items, subtotal = self._build_items(payload.items)
        row = Invoice(
            invoice_number=self._next_number(invoice_type),
            type=invoice_type,
            status=InvoiceStatus.DRAFT,
            date=payload.date or date.today(),
            subtotal=subtotal,
            cgst_rate=payload.cgst_rate if payload.cgst_rate is not None else settings.default_cgst_rate,
            sgst_rate=payload.sgst_rate if payload.sgst_rate is not None else settings.default_sgst_rate,
            igst_rate=payload.igst_rate if payload.igst_rate is not None else settings.default_igst_rate,
            notes=_clean(payload.notes),
            user_id=self.profile.user_id,
        )
        _apply_counterpart_patch(row, payload, invoice_type)
        apply_counterpart_autofill(row, invoice_type, self.profile)
        row.items = items
        self.db.add(row)
        self._commit()
        logger.info(
            "invoice_created id=%s number=%s type=%s items=%s subtotal=%s",
            row.id,
            row.invoice_number,
            invoice_type,
            len(items),
            subtotal,
        )

        inventory_update: ReconciliationResult | None = None
        if payload.update_inventory:
            inventory_update = InventoryReconciler(self.db).reconcile(row.id)
            if invoice_type == InvoiceType.PURCHASE.value:
                self._apply_pricing_updates(payload.items)
            if not inventory_update.success:
                logger.error("invoice_inventory_update_failed id=%s message=%s", row.id, inventory_update.message)
        return self.get(row.id), inventory_update

    def _apply_pricing_updates(self, payload_items: list[InvoiceItemCreate]) -> None:
        changed = False
        for raw in payload_items:
            pricing = raw.update_product_pricing
            if pricing is None:
                continue
            product = self.db.get(Product, raw.product_id)
            if product is None:
                continue
            if pricing.mrp is not None:
                product.mrp = pricing.mrp
            if pricing.selling_price is not None:
                product.selling_price = pricing.selling_price
            if pricing.wholesale_price is not None:
                product.wholesale_price = pricing.wholesale_price
            changed = True
        if changed:
            self._commit()

    def update(self, invoice_id: UUID, payload: InvoiceUpdate) -> Invoice:
        row = self.get(invoice_id)
        if payload.items is None:
            # Metadata-only edit: items and totals stay as they are.
            if payload.date is not None:
                row.date = payload.date
            if payload.notes is not None:
                row.notes = _clean(payload.notes)
            if payload.status is not None:
                row.status = normalize_status(payload.status)
            self._commit()
            logger.info("invoice_patched id=%s", row.id)
            return self.get(row.id)

        stored_type = (row.type or "").strip().upper()
        stored_type = INVOICE_TYPE_ALIASES.get(stored_type, stored_type)
        invoice_type = normalize_invoice_type(payload.type if payload.type is not None else row.type)
        if counterpart_side(invoice_type) != counterpart_side(stored_type):
            # The new counterpart side currently holds the user's own business.
            _require_counterpart(payload, invoice_type)
        items, subtotal = self._build_items(payload.items)
        row.items.clear()
        # Old rows must be gone before new serial numbers are inserted.
        self.db.flush()
        row.items.extend(items)

        row.type = invoice_type
        row.subtotal = subtotal
        if payload.date is not None:
            row.date = payload.date
        if payload.status is not None:
            row.status = normalize_status(payload.status)
        if payload.notes is not None:
            row.notes = _clean(payload.notes)
        if payload.cgst_rate is not None:
            row.cgst_rate = payload.cgst_rate
        if payload.sgst_rate is not None:
            row.sgst_rate = payload.sgst_rate
        if payload.igst_rate is not None:
            row.igst_rate = payload.igst_rate
        _apply_counterpart_patch(row, payload, invoice_type)
        apply_counterpart_autofill(row, invoice_type, self.profile)
        self._commit()
        logger.info("invoice_updated id=%s type=%s items=%s subtotal=%s", row.id, invoice_type, len(items), subtotal)
        return self.get(row.id)

    def delete(self, invoice_id: UUID) -> None:
        row = self.get(invoice_id)
        # Stock already reconciled for this invoice is not given back.
        self.db.delete(row)
        self._commit()
        logger.info("invoice_deleted id=%s", invoice_id)
