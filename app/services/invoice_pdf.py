from __future__ import annotations

import io

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas

from app.core.config import settings
from app.models.invoice import Invoice, InvoiceType
from app.services.invoice_service import compute_tax_breakdown
from app.utils.words import amount_in_words

MAX_VISIBLE_ROWS = 12


def _money(value: float) -> str:
    return f"{float(value or 0):,.2f}"


def _qty(value: float) -> str:
    return f"{float(value or 0):.2f}".rstrip("0").rstrip(".") or "0"


def _party_card(c: canvas.Canvas, x: float, y: float, w: float, h: float, title: str, lines: list[str]) -> None:
    muted = colors.HexColor("#475569")
    ink = colors.HexColor("#0f172a")
    c.setFillColor(colors.white)
    c.setStrokeColor(colors.HexColor("#e2e8f0"))
    c.roundRect(x, y, w, h, 6, fill=1, stroke=1)
    c.setFillColor(muted)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(x + 5 * mm, y + h - 8 * mm, title)
    c.setFillColor(ink)
    c.setFont("Helvetica-Bold", 11)
    c.drawString(x + 5 * mm, y + h - 15 * mm, (lines[0] or "-")[:48])
    c.setFont("Helvetica", 9)
    c.setFillColor(muted)
    ty = y + h - 21 * mm
    for line in lines[1:]:
        if not line:
            continue
        c.drawString(x + 5 * mm, ty, line[:60])
        ty -= 5 * mm


def render_invoice_pdf(inv: Invoice) -> bytes:
    taxes = compute_tax_breakdown(inv.subtotal, inv.cgst_rate, inv.sgst_rate, inv.igst_rate)
    is_sale = inv.type == InvoiceType.SALE.value
    status = inv.status.value if hasattr(inv.status, "value") else str(inv.status)

    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    page_w, page_h = A4
    margin = 16 * mm
    primary = colors.HexColor("#0f766e")
    ink = colors.HexColor("#0f172a")
    muted = colors.HexColor("#475569")
    soft = colors.HexColor("#e2e8f0")

    # Header band
    c.setFillColor(primary)
    c.roundRect(margin, page_h - 50 * mm, page_w - (2 * margin), 34 * mm, 7, fill=1, stroke=0)
    c.setFillColor(colors.white)
    c.setFont("Helvetica-Bold", 22)
    c.drawString(margin + 8 * mm, page_h - 31 * mm, "TAX INVOICE" if is_sale else "PURCHASE BILL")
    c.setFont("Helvetica", 10)
    c.drawString(margin + 8 * mm, page_h - 37 * mm, (inv.sender_name or "")[:60])

    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(page_w - margin - 8 * mm, page_h - 28 * mm, f"No. {inv.invoice_number}")
    c.setFont("Helvetica", 10)
    c.drawRightString(page_w - margin - 8 * mm, page_h - 34 * mm, f"Date: {inv.date.isoformat() if inv.date else '-'}")
    c.drawRightString(page_w - margin - 8 * mm, page_h - 40 * mm, f"Status: {status}")

    # Party cards
    card_y = page_h - 92 * mm
    card_h = 36 * mm
    card_w = (page_w - (2 * margin) - 8 * mm) / 2
    _party_card(
        c,
        margin,
        card_y,
        card_w,
        card_h,
        "From",
        [inv.sender_name, inv.sender_address, f"GSTIN: {inv.sender_gst}" if inv.sender_gst else "", inv.sender_contact],
    )
    _party_card(
        c,
        margin + card_w + 8 * mm,
        card_y,
        card_w,
        card_h,
        "Bill To",
        [inv.receiver_name, inv.receiver_address, f"GSTIN: {inv.receiver_gst}" if inv.receiver_gst else "", inv.receiver_contact],
    )

    item_rows = list(inv.items or [])
    visible_rows = item_rows[:MAX_VISIBLE_ROWS]

    # Line item table
    row_h = 8 * mm
    table_h = (10 * mm) + (max(1, len(visible_rows)) * row_h) + (4 * mm)
    table_y = card_y - 8 * mm - table_h
    c.setStrokeColor(soft)
    c.roundRect(margin, table_y, page_w - (2 * margin), table_h, 6, fill=0, stroke=1)
    c.setFillColor(colors.HexColor("#f8fafc"))
    c.roundRect(margin, table_y + table_h - 10 * mm, page_w - (2 * margin), 10 * mm, 6, fill=1, stroke=0)
    sn_left = margin + 5 * mm
    name_left = margin + 15 * mm
    qty_right = margin + 105 * mm
    rate_right = margin + 130 * mm
    disc_right = margin + 148 * mm
    amount_right = page_w - margin - 5 * mm
    header_y = table_y + table_h - 6.8 * mm
    c.setFillColor(ink)
    c.setFont("Helvetica-Bold", 10)
    c.drawString(sn_left, header_y, "#")
    c.drawString(name_left, header_y, "Product")
    c.drawRightString(qty_right, header_y, "Qty")
    c.drawRightString(rate_right, header_y, "Rate")
    c.drawRightString(disc_right, header_y, "Disc %")
    c.drawRightString(amount_right, header_y, "Amount")

    c.setFont("Helvetica", 9.5)
    y = table_y + table_h - 15 * mm
    for row in visible_rows:
        c.drawString(sn_left, y, str(row.serial_number))
        c.drawString(name_left, y, (row.product_name or "Item")[:48])
        c.drawRightString(qty_right, y, _qty(row.quantity))
        c.drawRightString(rate_right, y, _money(row.rate))
        c.drawRightString(disc_right, y, _qty(row.discount))
        c.drawRightString(amount_right, y, _money(row.amount))
        y -= row_h
    if len(item_rows) > len(visible_rows):
        c.setFont("Helvetica-Oblique", 8.5)
        c.setFillColor(muted)
        c.drawString(sn_left, table_y + 2.5 * mm, f"+ {len(item_rows) - len(visible_rows)} more lines")

    # Totals box
    lines = [("Subtotal", taxes.subtotal)]
    if inv.cgst_rate:
        lines.append((f"CGST {_qty(inv.cgst_rate)}%", taxes.cgst_amount))
    if inv.sgst_rate:
        lines.append((f"SGST {_qty(inv.sgst_rate)}%", taxes.sgst_amount))
    if inv.igst_rate:
        lines.append((f"IGST {_qty(inv.igst_rate)}%", taxes.igst_amount))
    total_w = 74 * mm
    total_h = (len(lines) + 2) * 6 * mm
    total_x = page_w - margin - total_w
    total_y = table_y - 6 * mm - total_h
    c.setFillColor(colors.HexColor("#f0fdfa"))
    c.setStrokeColor(soft)
    c.roundRect(total_x, total_y, total_w, total_h, 6, fill=1, stroke=1)
    ty = total_y + total_h - 7 * mm
    c.setFont("Helvetica", 10)
    for label, value in lines:
        c.setFillColor(muted)
        c.drawString(total_x + 5 * mm, ty, label)
        c.setFillColor(ink)
        c.drawRightString(total_x + total_w - 5 * mm, ty, _money(value))
        ty -= 6 * mm
    c.setFillColor(primary)
    c.setFont("Helvetica-Bold", 12)
    c.drawString(total_x + 5 * mm, ty - 2 * mm, "TOTAL")
    c.drawRightString(total_x + total_w - 5 * mm, ty - 2 * mm, _money(taxes.total_amount))

    c.setFillColor(ink)
    c.setFont("Helvetica-Oblique", 9)
    c.drawString(margin, total_y - 8 * mm, amount_in_words(taxes.total_amount, settings.currency_label)[:110])
    if inv.notes:
        c.setFillColor(muted)
        c.setFont("Helvetica", 9)
        c.drawString(margin, total_y - 14 * mm, f"Notes: {inv.notes}"[:110])

    # Footer
    c.setFillColor(muted)
    c.setFont("Helvetica", 8.5)
    c.drawString(margin, 15 * mm, "Computer generated invoice")
    c.drawRightString(page_w - margin, 15 * mm, f"Invoice ID: {inv.id}")
    c.showPage()
    c.save()
    return buf.getvalue()
