from __future__ import annotations

import unittest
import uuid

from fastapi.testclient import TestClient

from app.db.session import get_db
from app.main import app
from tests.helpers import make_session_factory

REGISTRATION = {
    "name": "Owner",
    "email": "owner@example.com",
    "password": "secret",
    "business_name": "Acme Traders",
    "business_address": "12 Market Road, Pune",
    "business_contact": "+91 98000 00000",
}


class ApiTests(unittest.TestCase):
    def setUp(self):
        factory = make_session_factory()

        def override_get_db():
            db = factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def _login(self) -> dict:
        self.assertEqual(self.client.post("/auth/register", json=REGISTRATION).status_code, 201)
        res = self.client.post("/auth/login", json={"email": "OWNER@example.com", "password": "secret"})
        self.assertEqual(res.status_code, 200)
        return res.json()["user"]

    def _product(self, name: str = "Widget", quantity: float = 10) -> dict:
        res = self.client.post("/products", json={"name": name, "quantity": quantity, "selling_price": 60})
        self.assertEqual(res.status_code, 201)
        return res.json()

    def _sale(self, product_id: str, quantity: float, **extra) -> dict:
        body = {
            "type": "SALE",
            "receiver_name": "Bright Retail",
            "receiver_address": "4 Lake View, Mumbai",
            "receiver_contact": "+91 99000 11111",
            "items": [{"product_id": product_id, "quantity": quantity, "rate": 100}],
        }
        body.update(extra)
        res = self.client.post("/invoices", json=body)
        self.assertEqual(res.status_code, 201, res.text)
        return res.json()

    def test_protected_routes_need_a_session(self):
        self.assertEqual(self.client.get("/invoices").status_code, 401)
        self.assertEqual(self.client.get("/products").status_code, 401)
        self.assertEqual(self.client.get("/dashboard").status_code, 401)

    def test_register_login_me(self):
        user = self._login()
        self.assertEqual(user["business"]["name"], "Acme Traders")
        me = self.client.get("/auth/me")
        self.assertEqual(me.status_code, 200)
        self.assertEqual(me.json()["user"]["email"], "owner@example.com")

        duplicate = self.client.post("/auth/register", json=REGISTRATION)
        self.assertEqual(duplicate.status_code, 400)
        wrong = self.client.post("/auth/login", json={"email": "owner@example.com", "password": "nope"})
        self.assertEqual(wrong.status_code, 401)

    def test_create_invoice_then_reconcile(self):
        self._login()
        product = self._product(quantity=10)
        invoice = self._sale(product["id"], 4)

        self.assertEqual(invoice["invoice_number"], "SIL-001")
        self.assertEqual(invoice["sender_name"], "Acme Traders")
        self.assertAlmostEqual(invoice["subtotal"], 400.0)
        self.assertAlmostEqual(invoice["tax_amount"], 72.0)
        self.assertAlmostEqual(invoice["total_amount"], 472.0)
        self.assertEqual(invoice["pdf_url"], f"/invoices/{invoice['id']}/pdf")
        self.assertIsNone(invoice["inventory_update"])

        res = self.client.post(f"/invoices/{invoice['id']}/reconcile")
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["results"][0]["new_quantity"], 6)
        self.assertEqual(self.client.get(f"/products/{product['id']}").json()["quantity"], 6)

        # The legacy alias runs the same reconciliation again.
        again = self.client.put(f"/invoices/{invoice['id']}/update-inventory")
        self.assertEqual(again.status_code, 200)
        self.assertEqual(again.json()["results"][0]["new_quantity"], 2)

    def test_insufficient_stock_is_a_normal_response(self):
        self._login()
        product = self._product(quantity=2)
        invoice = self._sale(product["id"], 5, update_inventory=True)

        update = invoice["inventory_update"]
        self.assertFalse(update["success"])
        self.assertEqual(update["message"], "Some products have insufficient inventory")
        self.assertEqual(update["results"][0]["reason"], "insufficient_stock")
        self.assertEqual(self.client.get(f"/products/{product['id']}").json()["quantity"], 2)

    def test_unknown_invoice_is_404(self):
        self._login()
        missing = uuid.uuid4()
        for res in (
            self.client.get(f"/invoices/{missing}"),
            self.client.patch(f"/invoices/{missing}", json={"notes": "x"}),
            self.client.delete(f"/invoices/{missing}"),
            self.client.post(f"/invoices/{missing}/reconcile"),
        ):
            self.assertEqual(res.status_code, 404)
            self.assertEqual(res.json()["detail"]["error"], "not_found")

    def test_invalid_invoice_type_and_validation_errors(self):
        self._login()
        product = self._product()
        res = self.client.post(
            "/invoices",
            json={"type": "RETURN", "items": [{"product_id": product["id"], "quantity": 1, "rate": 1}]},
        )
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"]["error"], "invalid_invoice_type")

        res = self.client.post("/invoices", json={"type": "SALE", "items": []})
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["detail"]["error"], "validation_failure")

    def test_patch_and_delete_invoice(self):
        self._login()
        product = self._product()
        invoice = self._sale(product["id"], 1)

        res = self.client.patch(f"/invoices/{invoice['id']}", json={"status": "PAID", "notes": "settled"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["status"], "PAID")
        self.assertEqual(len(res.json()["items"]), 1)

        self.assertEqual(self.client.delete(f"/products/{product['id']}").status_code, 400)
        self.assertEqual(self.client.delete(f"/invoices/{invoice['id']}").status_code, 204)
        self.assertEqual(self.client.get(f"/invoices/{invoice['id']}").status_code, 404)
        self.assertEqual(self.client.delete(f"/products/{product['id']}").status_code, 204)

    def test_put_replaces_invoice_items(self):
        self._login()
        product = self._product(quantity=10)
        invoice = self._sale(product["id"], 1)

        res = self.client.put(
            f"/invoices/{invoice['id']}",
            json={"items": [{"product_id": product["id"], "quantity": 3, "rate": 20}]},
        )
        self.assertEqual(res.status_code, 200, res.text)
        body = res.json()
        self.assertAlmostEqual(body["subtotal"], 60.0)
        self.assertEqual([i["serial_number"] for i in body["items"]], [1])

    def test_unknown_product_is_404(self):
        self._login()
        missing = uuid.uuid4()
        for res in (
            self.client.get(f"/products/{missing}"),
            self.client.patch(f"/products/{missing}", json={"quantity": 1}),
            self.client.delete(f"/products/{missing}"),
        ):
            self.assertEqual(res.status_code, 404)
            self.assertEqual(res.json()["detail"]["error"], "not_found")

    def test_product_listing(self):
        self._login()
        self._product("Blue Pen", quantity=1)
        self._product("Red Pen", quantity=30)
        self._product("Notebook", quantity=30)

        page = self.client.get("/products", params={"search": "pen", "limit": 1}).json()
        self.assertEqual(page["total_count"], 2)
        self.assertEqual(page["total_pages"], 2)
        self.assertEqual(len(page["products"]), 1)

        low = self.client.get("/products", params={"low_stock": True}).json()
        self.assertEqual([p["name"] for p in low["products"]], ["Blue Pen"])

    def test_invoice_pdf(self):
        self._login()
        product = self._product()
        invoice = self._sale(product["id"], 2)

        res = self.client.get(f"/invoices/{invoice['id']}/pdf")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.headers["content-type"], "application/pdf")
        self.assertTrue(res.content.startswith(b"%PDF"))

    def test_dashboard(self):
        self._login()
        self._product(quantity=1)
        res = self.client.get("/dashboard")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["low_stock_items"], 1)


if __name__ == "__main__":
    unittest.main()
