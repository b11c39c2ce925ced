"""
Stock reconciliation against a stored invoice.

A purchase adds each line's quantity to the product and records the line rate as the
product's latest buying price. A sale removes each line's quantity, unless the product
has less on hand than requested, in which case that line is reported and the product
is left untouched.

Lines are applied one by one, each in its own commit. A failing line never rolls back
lines already applied, and nothing records that an invoice has been reconciled, so a
second call applies the same quantities again.
"""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.models.invoice import INVOICE_TYPE_ALIASES, Invoice, InvoiceType
from app.models.product import Product
from app.schemas.inventory import ReconciliationItemResult, ReconciliationResult
from app.services.errors import InvalidInvoiceType, InvoiceNotFound, StorageFailure

logger = logging.getLogger("app.inventory")

PRODUCT_NOT_FOUND = "product_not_found"
INSUFFICIENT_STOCK = "insufficient_stock"

MESSAGE_OK = "Inventory updated successfully"
MESSAGE_INSUFFICIENT = "Some products have insufficient inventory"


def apply_stock_movement(invoice_type: str, on_hand: float, quantity: float) -> float | None:
    """
    Unit-testable quantity rule.
    Returns the new on-hand quantity, or None when a sale asks for more than is on hand.
    """
    if invoice_type == InvoiceType.PURCHASE.value:
        return on_hand + quantity
    if on_hand < quantity:
        return None
    return on_hand - quantity


def _fmt_qty(value: float) -> str:
    return f"{float(value):g}"


class InventoryReconciler:
    def __init__(self, db: Session):
        self.db = db

    def reconcile(self, invoice_id: UUID) -> ReconciliationResult:
        try:
            invoice = (
                self.db.execute(select(Invoice).where(Invoice.id == invoice_id).options(selectinload(Invoice.items)))
                .scalars()
                .one_or_none()
            )
        except SQLAlchemyError as e:
            raise StorageFailure(f"Failed to load invoice: {e}") from e
        if invoice is None:
            raise InvoiceNotFound(invoice_id)
        invoice_type = (invoice.type or "").strip().upper()
        invoice_type = INVOICE_TYPE_ALIASES.get(invoice_type, invoice_type)
        if invoice_type not in (InvoiceType.PURCHASE.value, InvoiceType.SALE.value):
            raise InvalidInvoiceType(invoice.type)

        # Per-line commits expire the ORM rows, so work from plain values.
        lines = [(item.product_id, float(item.quantity or 0), float(item.rate or 0)) for item in invoice.items]
        results = [self._apply_line(invoice_type, product_id, qty, rate) for product_id, qty, rate in lines]

        insufficient = any(r.reason == INSUFFICIENT_STOCK for r in results)
        failed = sum(1 for r in results if not r.success)
        logger.info(
            "reconcile_done invoice=%s type=%s lines=%s ok=%s failed=%s",
            invoice_id,
            invoice_type,
            len(results),
            len(results) - failed,
            failed,
        )
        if insufficient:
            logger.warning("reconcile_insufficient_stock invoice=%s", invoice_id)
        return ReconciliationResult(
            invoice_id=invoice_id,
            invoice_type=invoice_type,
            success=not insufficient,
            message=MESSAGE_INSUFFICIENT if insufficient else MESSAGE_OK,
            results=results,
        )

    def _apply_line(self, invoice_type: str, product_id: UUID, quantity: float, rate: float) -> ReconciliationItemResult:
        try:
            product = self.db.get(Product, product_id)
            if product is None:
                return ReconciliationItemResult(
                    product_id=product_id,
                    success=False,
                    reason=PRODUCT_NOT_FOUND,
                    message="Product not found",
                )
            old_quantity = float(product.quantity or 0)
            new_quantity = apply_stock_movement(invoice_type, old_quantity, quantity)
            if new_quantity is None:
                return ReconciliationItemResult(
                    product_id=product_id,
                    success=False,
                    reason=INSUFFICIENT_STOCK,
                    message=f"Insufficient inventory. Available: {_fmt_qty(old_quantity)}, Requested: {_fmt_qty(quantity)}",
                    available=old_quantity,
                    requested=quantity,
                )
            product.quantity = new_quantity
            if invoice_type == InvoiceType.PURCHASE.value:
                # Last purchase price wins; no price history is kept.
                product.buying_price = rate
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("reconcile_line_failed product=%s", product_id)
            raise StorageFailure(f"Failed to update inventory: {e}") from e

        delta = quantity if invoice_type == InvoiceType.PURCHASE.value else -quantity
        return ReconciliationItemResult(
            product_id=product_id,
            success=True,
            old_quantity=old_quantity,
            new_quantity=new_quantity,
            delta=delta,
        )
