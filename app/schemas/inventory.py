from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field


class ReconciliationItemResult(BaseModel):
    """Outcome for one invoice line. Failed lines carry reason/message instead of quantities."""

    product_id: UUID
    success: bool
    old_quantity: float | None = None
    new_quantity: float | None = None
    delta: float | None = None
    reason: str | None = Field(default=None, description="product_not_found | insufficient_stock")
    message: str | None = None
    available: float | None = None
    requested: float | None = None


class ReconciliationResult(BaseModel):
    invoice_id: UUID
    invoice_type: str
    success: bool
    message: str
    results: list[ReconciliationItemResult] = Field(default_factory=list)

    @property
    def failed(self) -> list[ReconciliationItemResult]:
        return [r for r in self.results if not r.success]
