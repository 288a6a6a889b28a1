"""
HTTP tests: the full FastAPI app over an in-memory SQLite store and a fake gateway.
"""

import json
import unittest

from fastapi.testclient import TestClient

from helpers import FakeGateway, KEY_SECRET, WEBHOOK_SECRET, cod_order_payload, make_settings, shipping_info
from storefront.core.exceptions import GatewayError
from storefront.domain import payments
from storefront.main import create_app


class ApiTestCase(unittest.TestCase):
    settings_overrides = {}

    def setUp(self):
        self.gateway = FakeGateway()
        self.app = create_app(make_settings(**self.settings_overrides), gateway=self.gateway)
        self.client = TestClient(self.app)

    def save_order(self, **overrides):
        response = self.client.post("/save-order", json=cod_order_payload(**overrides))
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()["order"]


class TestHealth(ApiTestCase):

    def test_root(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["message"], "Backend running")
        self.assertIn("POST /create-order", body["endpoints"])

    def test_unknown_route(self):
        response = self.client.get("/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"success": False, "error": "Not found"})

    def test_connection_report(self):
        body = self.client.get("/test-connection").json()
        self.assertTrue(body["success"])
        self.assertEqual(body["database"], "Connected")
        self.assertEqual(body["razorpay"], "Connected")
        self.assertIn("timestamp", body)


class TestCreateOrder(ApiTestCase):

    def test_amount_converted_to_paise(self):
        response = self.client.post("/create-order", json={"amount": 499.99})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["amount"], 49999)
        self.assertEqual(body["id"], "order_test1")
        self.assertEqual(body["currency"], "INR")
        self.assertEqual(self.gateway.calls[0]["amount"], 49999)
        self.assertEqual(self.gateway.calls[0]["currency"], "INR")

    def test_numeric_string_amount(self):
        response = self.client.post("/create-order", json={"amount": "250"})
        self.assertEqual(response.json()["amount"], 25000)

    def test_invalid_amounts(self):
        for body in ({}, {"amount": 0}, {"amount": -3}, {"amount": "ten"}, {"amount": None}):
            with self.subTest(body=body):
                response = self.client.post("/create-order", json=body)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["error"], "Invalid amount")
        self.assertEqual(self.gateway.calls, [])

    def test_amount_over_maximum(self):
        for amount in (100000.01, 1e30, "1e999999"):
            with self.subTest(amount=amount):
                response = self.client.post("/create-order", json={"amount": amount})
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["error"], "Amount exceeds maximum")
        self.assertEqual(self.gateway.calls, [])

    def test_gateway_errors(self):
        self.gateway.error = GatewayError(
            "The receipt may not be greater than 40 characters.",
            status_code=400,
            details={"code": "BAD_REQUEST_ERROR"},
        )
        response = self.client.post("/create-order", json={"amount": 10})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "The receipt may not be greater than 40 characters.")

        self.gateway.error = GatewayError(details={"status": 502})
        response = self.client.post("/create-order", json={"amount": 10})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Payment gateway error")


class TestSaveOrder(ApiTestCase):

    def test_cod_order(self):
        order = self.save_order()
        self.assertEqual(order["status"], "pending")
        self.assertEqual(order["total_amount"], 998)

        stored = self.client.get(f"/orders/{order['id']}").json()
        self.assertEqual(stored["status"], "pending")
        self.assertIsNone(stored["payment_id"])
        self.assertEqual(len(stored["order_items"]), 1)
        self.assertEqual(stored["order_items"][0]["quantity"], 2)
        self.assertEqual(stored["order_items"][0]["price_at_time"], 499)

    def test_validation_errors(self):
        response = self.client.post("/save-order", json=cod_order_payload(items=[]))
        self.assertEqual(response.status_code, 400)
        self.assertIn("items", response.json()["fields"])

        response = self.client.post("/save-order", json=cod_order_payload(total_amount=None))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["fields"], ["total_amount"])

        response = self.client.post(
            "/save-order",
            json=cod_order_payload(shipping_info=shipping_info(phone="", zipCode=None, city=None)),
        )
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(
            body["fields"],
            ["shipping_info.phone", "shipping_info.city", "shipping_info.zipCode"],
        )

    def test_numeric_payment_ids_accepted(self):
        order = self.save_order(payment_id=12345, payment_details={"razorpay_payment_id": 678})
        stored = self.client.get(f"/orders/{order['id']}").json()
        self.assertIsNone(stored["payment_id"])

        order = self.save_order(payment_method="razorpay", payment_id=987, razorpay_order_id="order_abc")
        stored = self.client.get(f"/orders/{order['id']}").json()
        self.assertEqual(stored["payment_id"], "987")
        self.assertEqual(stored["status"], "pending")

    def test_malformed_items_shape(self):
        response = self.client.post("/save-order", json=cod_order_payload(items="shirt"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid request")
        self.assertIn("items", response.json()["fields"])


class TestOrderReads(ApiTestCase):

    def test_list_requires_user(self):
        response = self.client.get("/orders")
        self.assertEqual(response.status_code, 400)

    def test_list_with_pagination(self):
        for _ in range(3):
            self.save_order()
        body = self.client.get("/orders", params={"user_id": "user-1", "limit": 2, "page": 2}).json()
        self.assertTrue(body["success"])
        self.assertEqual(len(body["data"]), 1)
        self.assertEqual(body["pagination"], {"page": 2, "limit": 2, "total": 3, "pages": 2})

    def test_missing_order(self):
        response = self.client.get("/orders/999")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "Order not found")

    def test_malformed_order_id_is_not_found(self):
        for order_id in ("abc", "1.5", "-1", "0", "9" * 40):
            with self.subTest(order_id=order_id):
                response = self.client.get(f"/orders/{order_id}")
                self.assertEqual(response.status_code, 404)
                self.assertEqual(response.json(), {"success": False, "error": "Order not found"})

    def test_numeric_string_id_resolves(self):
        order = self.save_order()
        self.assertEqual(self.client.get(f"/orders/{order['id']}").json()["id"], order["id"])


class TestVerifyPayment(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.order = self.save_order(payment_method="razorpay", razorpay_order_id="order_abc")

    def verify(self, signature):
        return self.client.post("/verify-payment", json={
            "razorpay_order_id": "order_abc",
            "razorpay_payment_id": "pay_abc",
            "razorpay_signature": signature,
        })

    def test_correct_signature_confirms_order(self):
        response = self.verify(payments.payment_signature(KEY_SECRET, "order_abc", "pay_abc"))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])
        self.assertEqual(response.json()["payment_id"], "pay_abc")
        stored = self.client.get(f"/orders/{self.order['id']}").json()
        self.assertEqual(stored["status"], "confirmed")

    def test_incorrect_signature(self):
        response = self.verify("0" * 64)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"success": False, "error": "Invalid signature"})
        stored = self.client.get(f"/orders/{self.order['id']}").json()
        self.assertEqual(stored["status"], "pending")

    def test_missing_fields(self):
        response = self.client.post("/verify-payment", json={"razorpay_order_id": "order_abc"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Missing payment verification data")


class TestWebhook(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.order = self.save_order(payment_method="razorpay", razorpay_order_id="order_abc")

    def post_event(self, event, secret=WEBHOOK_SECRET):
        body = json.dumps({
            "event": event,
            "payload": {"payment": {"entity": {"id": "pay_abc", "order_id": "order_abc"}}},
        }).encode()
        return self.client.post(
            "/webhook/razorpay",
            content=body,
            headers={
                "Content-Type": "application/json",
                "X-Razorpay-Signature": payments.webhook_signature(secret, body),
            },
        )

    def status(self):
        return self.client.get(f"/orders/{self.order['id']}").json()["status"]

    def test_captured(self):
        response = self.post_event("payment.captured")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"received": True})
        self.assertEqual(self.status(), "confirmed")

    def test_failed(self):
        self.post_event("payment.failed")
        self.assertEqual(self.status(), "failed")

    def test_other_events_ignored(self):
        response = self.post_event("order.paid")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.status(), "pending")

    def test_wrong_secret(self):
        response = self.post_event("payment.captured", secret="not-the-secret")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.status(), "pending")

    def test_missing_signature_header(self):
        response = self.client.post("/webhook/razorpay", json={"event": "payment.captured"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Missing signature")


class TestProducts(ApiTestCase):

    def create(self, **fields):
        product = {"name": "Shirt", "price": 499, "category": "apparel", "brand": "Acme"}
        product.update(fields)
        response = self.client.post("/products", json=product)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]

    def test_create_get_delete(self):
        product = self.create(id="p1", image_url="shirt.png")
        self.assertEqual(product["id"], "p1")
        self.assertEqual(product["price"], 499)

        self.assertEqual(self.client.get("/products/p1").json()["name"], "Shirt")
        self.assertEqual(self.client.delete("/products/p1").json(), {"success": True})
        self.assertEqual(self.client.get("/products/p1").status_code, 404)
        self.assertEqual(self.client.delete("/products/p1").status_code, 404)

    def test_list_filters_and_pagination(self):
        self.create(name="Shirt")
        self.create(name="Jeans", category="denim")
        self.create(name="Cap", brand="Other")

        body = self.client.get("/products").json()
        self.assertTrue(body["success"])
        self.assertEqual({p["name"] for p in body["data"]}, {"Cap", "Jeans", "Shirt"})
        self.assertEqual(body["pagination"]["total"], 3)

        body = self.client.get("/products", params={"category": "apparel", "brand": "Acme"}).json()
        self.assertEqual([p["name"] for p in body["data"]], ["Shirt"])

        body = self.client.get("/products", params={"limit": 1, "page": 3}).json()
        self.assertEqual(len(body["data"]), 1)
        self.assertEqual(body["pagination"]["pages"], 3)

    def test_create_requires_name_and_price(self):
        response = self.client.post("/products", json={"price": -1})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(set(response.json()["fields"]), {"name", "price"})


class CrashingRouteMixin:

    def crash(self):
        async def fail(*args, **kwargs):
            raise RuntimeError("secret internal detail")

        self.app.state.checkout.get_order = fail
        return TestClient(self.app, raise_server_exceptions=False).get("/orders/1")


class TestUnhandledErrors(CrashingRouteMixin, ApiTestCase):

    def test_production_hides_details(self):
        response = self.crash()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"success": False, "error": "Internal server error"})


class TestUnhandledErrorsDevelopment(CrashingRouteMixin, ApiTestCase):
    settings_overrides = {"ENVIRONMENT": "development"}

    def test_development_shows_message(self):
        response = self.crash()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Internal server error")
        self.assertEqual(response.json()["message"], "secret internal detail")


class TestCors(ApiTestCase):

    def test_configured_origin_allowed(self):
        origin = make_settings().CORS_ORIGINS[0]
        response = self.client.get("/", headers={"Origin": origin})
        self.assertEqual(response.headers.get("access-control-allow-origin"), origin)

    def test_unknown_origin_rejected_in_production(self):
        response = self.client.get("/", headers={"Origin": "https://evil.example"})
        self.assertNotIn("access-control-allow-origin", response.headers)


class TestCorsDevelopment(ApiTestCase):
    settings_overrides = {"ENVIRONMENT": "development"}

    def test_any_origin_allowed(self):
        response = self.client.get("/", headers={"Origin": "https://anything.example"})
        self.assertEqual(response.headers.get("access-control-allow-origin"), "https://anything.example")


if __name__ == "__main__":
    unittest.main()
