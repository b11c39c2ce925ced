from __future__ import annotations


class InventoryError(Exception):
    """Base class for failures raised by the invoice and inventory services."""

    code = "error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def as_detail(self) -> dict:
        return {"error": self.code, "message": self.message}


class InvoiceNotFound(InventoryError):
    code = "not_found"
    status_code = 404

    def __init__(self, invoice_id=None):
        super().__init__("Invoice not found" if invoice_id is None else f"Invoice {invoice_id} not found")
        self.invoice_id = invoice_id


class ProductNotFound(InventoryError):
    code = "not_found"
    status_code = 404

    def __init__(self, product_id=None):
        super().__init__("Product not found" if product_id is None else f"Product with ID {product_id} not found")
        self.product_id = product_id


class InvalidInvoiceType(InventoryError):
    code = "invalid_invoice_type"

    def __init__(self, invoice_type: str | None):
        super().__init__(f"Unknown invoice type: {invoice_type!r}. Expected PURCHASE or SALE.")
        self.invoice_type = invoice_type


class ValidationFailure(InventoryError):
    code = "validation_failure"


class StorageFailure(InventoryError):
    code = "storage_failure"
    status_code = 500
