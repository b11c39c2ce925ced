from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.auth import BusinessProfile, get_business_profile
from app.db.session import get_db
from app.models.invoice import Invoice
from app.schemas.inventory import ReconciliationResult
from app.schemas.invoice import InvoiceCreate, InvoiceRead, InvoiceUpdate
from app.services.errors import InventoryError, InvoiceNotFound
from app.services.inventory_service import InventoryReconciler
from app.services.invoice_pdf import render_invoice_pdf
from app.services.invoice_service import InvoiceService, compute_tax_breakdown

router = APIRouter(prefix="/invoices", tags=["invoices"])


def _http_error(err: InventoryError) -> HTTPException:
    return HTTPException(status_code=err.status_code, detail=err.as_detail())


def _to_read(row: Invoice, inventory_update: ReconciliationResult | None = None) -> InvoiceRead:
    data = InvoiceRead.model_validate(row)
    taxes = compute_tax_breakdown(row.subtotal, row.cgst_rate, row.sgst_rate, row.igst_rate)
    data.cgst_amount = taxes.cgst_amount
    data.sgst_amount = taxes.sgst_amount
    data.igst_amount = taxes.igst_amount
    data.tax_amount = taxes.tax_amount
    data.total_amount = taxes.total_amount
    data.pdf_url = f"/invoices/{row.id}/pdf"
    data.inventory_update = inventory_update
    return data


@router.get("", response_model=list[InvoiceRead])
def list_invoices(
    type: str | None = Query(None, description="PURCHASE or SALE"),
    status: str | None = Query(None),
    db: Session = Depends(get_db),
    profile: BusinessProfile = Depends(get_business_profile),
) -> list[InvoiceRead]:
    try:
        rows = InvoiceService(db, profile).list_invoices(invoice_type=type, status=status)
    except InventoryError as e:
        raise _http_error(e) from e
    return [_to_read(r) for r in rows]


@router.post("", response_model=InvoiceRead, status_code=201)
def create_invoice(
    payload: InvoiceCreate,
    db: Session = Depends(get_db),
    profile: BusinessProfile = Depends(get_business_profile),
) -> InvoiceRead:
    try:
        row, inventory_update = InvoiceService(db, profile).create(payload)
    except InventoryError as e:
        raise _http_error(e) from e
    return _to_read(row, inventory_update)


@router.get("/{invoice_id}", response_model=InvoiceRead)
def get_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    profile: BusinessProfile = Depends(get_business_profile),
) -> InvoiceRead:
    try:
        row = InvoiceService(db, profile).get(invoice_id)
    except InventoryError as e:
        raise _http_error(e) from e
    return _to_read(row)


@router.patch("/{invoice_id}", response_model=InvoiceRead)
@router.put("/{invoice_id}", response_model=InvoiceRead)
def update_invoice(
    invoice_id: UUID,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    profile: BusinessProfile = Depends(get_business_profile),
) -> InvoiceRead:
    try:
        row = InvoiceService(db, profile).update(invoice_id, payload)
    except InventoryError as e:
        raise _http_error(e) from e
    return _to_read(row)


@router.delete("/{invoice_id}", status_code=204)
def delete_invoice(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    profile: BusinessProfile = Depends(get_business_profile),
) -> None:
    try:
        InvoiceService(db, profile).delete(invoice_id)
    except InventoryError as e:
        raise _http_error(e) from e


@router.post("/{invoice_id}/reconcile", response_model=ReconciliationResult)
@router.put("/{invoice_id}/update-inventory", response_model=ReconciliationResult)
def reconcile_inventory(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    profile: BusinessProfile = Depends(get_business_profile),
) -> ReconciliationResult:
    """
    Apply the invoice's stock effect. Lines that fail are reported in `results`; lines
    that succeeded stay applied. Calling this twice applies the quantities twice.
    """
    try:
        # Ownership check; the reconciler itself is not user-scoped.
        InvoiceService(db, profile).get(invoice_id)
        return InventoryReconciler(db).reconcile(invoice_id)
    except InventoryError as e:
        raise _http_error(e) from e


@router.get("/{invoice_id}/pdf")
def invoice_pdf(
    invoice_id: UUID,
    db: Session = Depends(get_db),
    profile: BusinessProfile = Depends(get_business_profile),
) -> Response:
    try:
        inv = InvoiceService(db, profile).get(invoice_id)
    except InvoiceNotFound as e:
        raise _http_error(e) from e
    headers = {"Content-Disposition": f'inline; filename="invoice-{inv.invoice_number}.pdf"'}
    return Response(content=render_invoice_pdf(inv), media_type="application/pdf", headers=headers)
