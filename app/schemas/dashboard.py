from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class MonthlyChange(BaseModel):
    current: float = 0
    previous: float = 0
    change_pct: int = 0
    change_type: str = "increase"  # increase | decrease


class RecentActivity(BaseModel):
    id: UUID
    title: str
    invoice_number: str
    invoice_type: str
    status: str
    amount: float
    party_name: str | None = None
    created_at: datetime


class DashboardResponse(BaseModel):
    total_products: int = 0
    total_invoices: int = 0
    low_stock_items: int = 0
    total_amount_received: float = 0
    total_amount_spent: float = 0
    sales: MonthlyChange
    spent: MonthlyChange
    invoices: MonthlyChange
    recent_activity: list[RecentActivity] = Field(default_factory=list)
