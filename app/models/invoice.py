from __future__ import annotations

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, Float, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class InvoiceType(str, enum.Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    FINALIZED = "FINALIZED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


# Older clients send BUYING/SELLING.
INVOICE_TYPE_ALIASES = {
    "BUYING": InvoiceType.PURCHASE.value,
    "SELLING": InvoiceType.SALE.value,
}


class Invoice(Base):
    """
    Purchase or sale invoice. The user's own business sits on the receiver side of a
    purchase and on the sender side of a sale; the other side is the counterpart.
    """

    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    invoice_number: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    # Plain string so rows written by older clients (BUYING/SELLING) still load.
    type: Mapped[str] = mapped_column(String(16), index=True)  # PURCHASE | SALE
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, name="invoice_status"), index=True, default=InvoiceStatus.DRAFT
    )
    date: Mapped[date] = mapped_column(Date, index=True)

    sender_name: Mapped[str] = mapped_column(String(256), default="")
    sender_address: Mapped[str] = mapped_column(Text, default="")
    sender_gst: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sender_contact: Mapped[str] = mapped_column(String(128), default="")
    receiver_name: Mapped[str] = mapped_column(String(256), default="")
    receiver_address: Mapped[str] = mapped_column(Text, default="")
    receiver_gst: Mapped[str | None] = mapped_column(String(32), nullable=True)
    receiver_contact: Mapped[str] = mapped_column(String(128), default="")

    subtotal: Mapped[float] = mapped_column(Float, default=0)
    cgst_rate: Mapped[float] = mapped_column(Float, default=0)
    sgst_rate: Mapped[float] = mapped_column(Float, default=0)
    igst_rate: Mapped[float] = mapped_column(Float, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    user_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped["User"] = relationship("User", back_populates="invoices")
    items: Mapped[list["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.serial_number",
    )
