from __future__ import annotations

import unittest
import uuid
from datetime import date

from sqlalchemy import func, select

from app.models.invoice import InvoiceStatus
from app.models.invoice_item import InvoiceItem
from app.models.product import Product
from app.schemas.invoice import InvoiceUpdate
from app.services.errors import InvalidInvoiceType, InvoiceNotFound, ValidationFailure
from app.services.invoice_service import InvoiceService
from tests.helpers import line, make_product, make_session_factory, make_user, profile_for, purchase_payload, sale_payload


class InvoiceServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = make_session_factory()()
        self.user = make_user(self.db)
        self.profile = profile_for(self.user)
        self.service = InvoiceService(self.db, self.profile)
        self.pen = make_product(self.db, name="Pen", quantity=100)
        self.book = make_product(self.db, name="Book", quantity=50)
        self.bag = make_product(self.db, name="Bag", quantity=20)

    def tearDown(self):
        self.db.close()

    def _item_count(self) -> int:
        return int(self.db.execute(select(func.count(InvoiceItem.id))).scalar())

    def test_create_sale_fills_sender_from_profile(self):
        invoice, inventory_update = self.service.create(
            sale_payload(line(self.pen, 10, rate=5), line(self.book, 2, rate=100, discount=10), notes="  first order ")
        )

        self.assertIsNone(inventory_update)
        self.assertEqual(invoice.invoice_number, "SIL-001")
        self.assertEqual(invoice.status, InvoiceStatus.DRAFT)
        self.assertEqual(invoice.date, date.today())
        self.assertEqual(invoice.notes, "first order")
        self.assertEqual(invoice.sender_name, "Acme Traders")
        self.assertEqual(invoice.sender_gst, "27ABCDE1234F1Z5")
        self.assertEqual(invoice.receiver_name, "Bright Retail")
        self.assertEqual([i.serial_number for i in invoice.items], [1, 2])
        self.assertEqual([i.product_name for i in invoice.items], ["Pen", "Book"])
        self.assertAlmostEqual(invoice.items[1].amount, 180.0)
        self.assertAlmostEqual(invoice.subtotal, 230.0)
        self.assertEqual((invoice.cgst_rate, invoice.sgst_rate, invoice.igst_rate), (9.0, 9.0, 0.0))

    def test_create_purchase_fills_receiver_and_numbers_per_type(self):
        first, _ = self.service.create(purchase_payload(line(self.pen, 1)))
        second, _ = self.service.create(purchase_payload(line(self.bag, 1), igst_rate=18, cgst_rate=0, sgst_rate=0))
        sale, _ = self.service.create(sale_payload(line(self.pen, 1)))

        self.assertEqual(first.invoice_number, "BIL-001")
        self.assertEqual(second.invoice_number, "BIL-002")
        self.assertEqual(sale.invoice_number, "SIL-001")
        self.assertEqual(first.receiver_name, "Acme Traders")
        self.assertEqual(first.sender_name, "Wholesale Depot")
        self.assertEqual((second.cgst_rate, second.sgst_rate, second.igst_rate), (0, 0, 18))

    def test_create_keeps_custom_product_name(self):
        invoice, _ = self.service.create(sale_payload(line(self.pen, 1, product_name="Blue pen")))
        self.assertEqual(invoice.items[0].product_name, "Blue pen")

    def test_create_validation_failures(self):
        with self.assertRaises(ValidationFailure):
            self.service.create(sale_payload())
        with self.assertRaises(ValidationFailure) as ctx:
            self.service.create(sale_payload(line(self.pen, 1), receiver_name="", receiver_contact=None))
        self.assertIn("receiver_name", ctx.exception.message)
        self.assertIn("receiver_contact", ctx.exception.message)
        ghost = Product(id=uuid.uuid4(), name="Ghost")
        with self.assertRaises(ValidationFailure):
            self.service.create(sale_payload(line(ghost, 1)))
        with self.assertRaises(InvalidInvoiceType):
            self.service.create(sale_payload(line(self.pen, 1), type="RETURN"))
        self.assertEqual(self._item_count(), 0)

    def test_full_update_replaces_items_and_renumbers(self):
        invoice, _ = self.service.create(
            sale_payload(line(self.pen, 1, rate=10), line(self.book, 1, rate=20), line(self.bag, 1, rate=30))
        )

        updated = self.service.update(
            invoice.id,
            InvoiceUpdate(items=[line(self.bag, 2, rate=30), line(self.pen, 4, rate=10)], igst_rate=5),
        )

        self.assertEqual([i.serial_number for i in updated.items], [1, 2])
        self.assertEqual([i.product_name for i in updated.items], ["Bag", "Pen"])
        self.assertAlmostEqual(updated.subtotal, 100.0)
        self.assertEqual((updated.cgst_rate, updated.sgst_rate, updated.igst_rate), (9.0, 9.0, 5.0))
        self.assertEqual(self._item_count(), 2)

    def test_full_update_switching_type_refills_own_side(self):
        invoice, _ = self.service.create(sale_payload(line(self.pen, 1)))

        updated = self.service.update(
            invoice.id,
            InvoiceUpdate(
                type="PURCHASE",
                sender_name="Wholesale Depot",
                sender_address="88 Industrial Area, Nashik",
                sender_contact="+91 97000 22222",
                items=[line(self.pen, 3)],
            ),
        )

        self.assertEqual(updated.type, "PURCHASE")
        self.assertEqual(updated.invoice_number, "SIL-001")
        self.assertEqual(updated.sender_name, "Wholesale Depot")
        self.assertEqual(updated.receiver_name, "Acme Traders")

    def test_switching_type_requires_new_counterpart(self):
        invoice, _ = self.service.create(sale_payload(line(self.pen, 1)))

        with self.assertRaises(ValidationFailure) as ctx:
            self.service.update(invoice.id, InvoiceUpdate(type="PURCHASE", items=[line(self.pen, 3)]))
        self.assertIn("sender_name", ctx.exception.message)

        self.db.expire_all()
        unchanged = self.service.get(invoice.id)
        self.assertEqual(unchanged.type, "SALE")
        self.assertEqual(unchanged.sender_name, "Acme Traders")
        self.assertEqual(unchanged.receiver_name, "Bright Retail")
        self.assertEqual(self._item_count(), 1)

    def test_full_update_same_type_keeps_stored_counterpart(self):
        invoice, _ = self.service.create(sale_payload(line(self.pen, 1)))

        updated = self.service.update(invoice.id, InvoiceUpdate(items=[line(self.book, 2)]))

        self.assertEqual(updated.receiver_name, "Bright Retail")
        self.assertEqual(updated.sender_name, "Acme Traders")

    def test_partial_update_leaves_items_untouched(self):
        invoice, _ = self.service.create(sale_payload(line(self.pen, 2, rate=5), line(self.book, 1, rate=100)))
        item_ids = [i.id for i in invoice.items]

        updated = self.service.update(
            invoice.id,
            InvoiceUpdate(date=date(2024, 5, 1), notes="paid by cheque", status="PAID", receiver_name="Ignored"),
        )

        self.assertEqual(updated.date, date(2024, 5, 1))
        self.assertEqual(updated.notes, "paid by cheque")
        self.assertEqual(updated.status, InvoiceStatus.PAID)
        self.assertEqual(updated.receiver_name, "Bright Retail")
        self.assertEqual([i.id for i in updated.items], item_ids)
        self.assertAlmostEqual(updated.subtotal, 110.0)

    def test_update_unknown_invoice(self):
        with self.assertRaises(InvoiceNotFound):
            self.service.update(uuid.uuid4(), InvoiceUpdate(notes="x"))

    def test_delete_removes_items_and_keeps_stock(self):
        invoice, _ = self.service.create(sale_payload(line(self.pen, 1), line(self.book, 1), line(self.bag, 1)))
        self.assertEqual(self._item_count(), 3)

        self.service.delete(invoice.id)

        self.assertEqual(self._item_count(), 0)
        with self.assertRaises(InvoiceNotFound):
            self.service.get(invoice.id)
        with self.assertRaises(InvoiceNotFound):
            self.service.delete(invoice.id)
        self.db.expire_all()
        self.assertEqual(self.db.get(Product, self.pen.id).quantity, 100)
        self.assertEqual(self.db.get(Product, self.book.id).quantity, 50)
        self.assertEqual(self.db.get(Product, self.bag.id).quantity, 20)

    def test_invoices_are_scoped_to_their_owner(self):
        invoice, _ = self.service.create(sale_payload(line(self.pen, 1)))
        other = make_user(self.db, email="other@example.com", business_name="Other Co")
        other_service = InvoiceService(self.db, profile_for(other))

        with self.assertRaises(InvoiceNotFound):
            other_service.get(invoice.id)
        self.assertEqual(other_service.list_invoices(), [])
        self.assertEqual(len(self.service.list_invoices(invoice_type="sale")), 1)
        self.assertEqual(self.service.list_invoices(invoice_type="PURCHASE"), [])
        self.assertEqual(self.service.list_invoices(status="PAID"), [])


if __name__ == "__main__":
    unittest.main()
