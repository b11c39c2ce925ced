from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.invoice import Invoice, InvoiceStatus, InvoiceType
from app.models.product import Product
from app.schemas.dashboard import DashboardResponse, MonthlyChange, RecentActivity

RECENT_ACTIVITY_LIMIT = 5


@dataclass
class MonthWindow:
    current_start: date
    previous_start: date


def month_window(today: date | None = None) -> MonthWindow:
    now = today or date.today()
    current_start = now.replace(day=1)
    previous_start = (current_start - timedelta(days=1)).replace(day=1)
    return MonthWindow(current_start=current_start, previous_start=previous_start)


def percentage_change(current: float, previous: float) -> int:
    """
    Month-over-month change in whole percent, halves rounded up.
    A zero previous month reads as +100% when anything happened this month.
    """
    if not previous:
        return 100 if current > 0 else 0
    return int(math.floor((current - previous) / previous * 100 + 0.5))


def monthly_change(current: float, previous: float) -> MonthlyChange:
    pct = percentage_change(current, previous)
    return MonthlyChange(
        current=current,
        previous=previous,
        change_pct=pct,
        change_type="increase" if pct >= 0 else "decrease",
    )


class DashboardService:
    def __init__(self, db: Session, user_id: UUID):
        self.db = db
        self.user_id = user_id

    def _subtotal(self, *conditions) -> float:
        q = select(func.coalesce(func.sum(Invoice.subtotal), 0)).where(Invoice.user_id == self.user_id, *conditions)
        return float(self.db.execute(q).scalar() or 0)

    def _invoice_count(self, *conditions) -> int:
        q = select(func.count(Invoice.id)).where(Invoice.user_id == self.user_id, *conditions)
        return int(self.db.execute(q).scalar() or 0)

    def summary(self, today: date | None = None) -> DashboardResponse:
        window = month_window(today)
        in_current = Invoice.date >= window.current_start
        in_previous = (Invoice.date >= window.previous_start) & (Invoice.date < window.current_start)
        is_sale = Invoice.type == InvoiceType.SALE.value
        is_purchase = Invoice.type == InvoiceType.PURCHASE.value
        is_paid = Invoice.status == InvoiceStatus.PAID

        total_products = int(self.db.execute(select(func.count(Product.id))).scalar() or 0)
        low_stock = int(
            self.db.execute(select(func.count(Product.id)).where(Product.quantity < settings.low_stock_threshold)).scalar()
            or 0
        )

        recent_rows = (
            self.db.execute(
                select(Invoice)
                .where(Invoice.user_id == self.user_id)
                .order_by(Invoice.created_at.desc())
                .limit(RECENT_ACTIVITY_LIMIT)
            )
            .scalars()
            .all()
        )
        recent = [
            RecentActivity(
                id=inv.id,
                title=f"Invoice #{inv.invoice_number} {inv.status.value.lower()}",
                invoice_number=inv.invoice_number,
                invoice_type=inv.type,
                status=inv.status.value,
                amount=float(inv.subtotal or 0),
                party_name=inv.receiver_name if inv.type == InvoiceType.SALE.value else inv.sender_name,
                created_at=inv.created_at,
            )
            for inv in recent_rows
        ]

        return DashboardResponse(
            total_products=total_products,
            total_invoices=self._invoice_count(),
            low_stock_items=low_stock,
            total_amount_received=self._subtotal(is_sale, is_paid),
            total_amount_spent=self._subtotal(is_purchase, is_paid),
            sales=monthly_change(self._subtotal(is_sale, in_current), self._subtotal(is_sale, in_previous)),
            spent=monthly_change(self._subtotal(is_purchase, in_current), self._subtotal(is_purchase, in_previous)),
            invoices=monthly_change(self._invoice_count(in_current), self._invoice_count(in_previous)),
            recent_activity=recent,
        )
