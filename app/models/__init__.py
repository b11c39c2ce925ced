from app.models.invoice import Invoice, InvoiceStatus, InvoiceType
from app.models.invoice_item import InvoiceItem
from app.models.product import Product
from app.models.user import User, UserRole

__all__ = [
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "InvoiceType",
    "Product",
    "User",
    "UserRole",
]
