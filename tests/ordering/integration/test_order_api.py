"""Integration tests for checkout, payment events and order endpoints via TestClient."""

from protean import current_domain
from storefront.gateway.fake_adapter import FAKE_CHALLENGE
from storefront.inventory.queries import get_product
from storefront.ordering.order import Order

CONTACT = {
    "first_name": "Amina",
    "last_name": "Odhiambo",
    "email": "amina@example.com",
    "phone": "254700000001",
}


def _checkout(client, api_ref, product_id, quantity=1, **extra):
    body = {**CONTACT, "api_ref": api_ref, "lines": [{"product_id": product_id, "quantity": quantity}], **extra}
    return client.post("/orders/checkout", json=body)


def _webhook(client, api_ref, state, challenge=FAKE_CHALLENGE, **extra):
    body = {"api_ref": api_ref, "state": state, "challenge": challenge, **extra}
    return client.post("/orders/webhook/intasend", json=body)


class TestCheckoutEndpoint:
    def test_creates_hosted_checkout(self, client, add_product):
        product_id = add_product(price="10.00")
        response = _checkout(client, "REF-H1", product_id, 2, total_amount=1.0)
        data = response.json()["data"]

        assert response.status_code == 201
        assert data["amount"] == 20.0
        assert data["url"].startswith("https://pay.fake-gateway.test/checkout/")
        assert data["checkout_id"].startswith("fake_chk_")
        assert current_domain.repository_for(Order).query.all().items == []

    def test_from_cart(self, client, add_product):
        product_id = add_product(price="5.00")
        client.post("/cart/add", json={"session_key": "sess-h", "product_id": product_id, "quantity": 3})
        response = client.post("/orders/checkout", json={**CONTACT, "api_ref": "REF-H2", "session_key": "sess-h"})
        assert response.status_code == 201
        assert response.json()["data"]["amount"] == 15.0

    def test_empty_cart_is_400(self, client):
        response = client.post("/orders/checkout", json={**CONTACT, "api_ref": "REF-H3", "session_key": "nobody"})
        assert response.status_code == 400
        assert response.json()["message"] == "Cart is empty"

    def test_gateway_failure_is_502(self, client, add_product, gateway):
        gateway.configure(should_succeed=False, failure_reason="Merchant disabled")
        response = _checkout(client, "REF-H4", add_product())
        assert response.status_code == 502
        assert response.json()["message"] == "Payment gateway error: Merchant disabled"

    def test_duplicate_reference_is_400(self, client, add_product):
        product_id = add_product()
        _checkout(client, "REF-H5", product_id)
        assert _checkout(client, "REF-H5", product_id).status_code == 400

    def test_missing_contact_is_400(self, client, add_product):
        response = client.post(
            "/orders/checkout",
            json={"api_ref": "REF-H6", "lines": [{"product_id": add_product(), "quantity": 1}]},
        )
        assert response.status_code == 400


class TestConfirmEndpoint:
    def test_confirm_creates_order(self, client, add_product):
        product_id = add_product(price="10.00", stock=3)
        _checkout(client, "REF-H10", product_id, 2)

        response = client.post("/orders/confirm", json={"api_ref": "REF-H10", "state": "COMPLETE"})
        data = response.json()["data"]

        assert response.status_code == 200
        assert data["payment_status"] == "COMPLETE"
        assert data["total_amount"] == 20.0
        assert data["customer_email"] == "amina@example.com"
        assert get_product(product_id).stock_quantity == 1

    def test_unknown_reference_is_404(self, client):
        response = client.post("/orders/confirm", json={"api_ref": "REF-NOPE", "state": "COMPLETE"})
        assert response.status_code == 404

    def test_unknown_state_is_400(self, client, add_product):
        _checkout(client, "REF-H11", add_product())
        response = client.post("/orders/confirm", json={"api_ref": "REF-H11", "state": "MAYBE"})
        assert response.status_code == 400


class TestWebhookEndpoint:
    def test_webhook_then_confirm_creates_one_order(self, client, add_product):
        product_id = add_product(price="10.00", stock=3)
        _checkout(client, "REF-H20", product_id, 2)

        hook = _webhook(client, "REF-H20", "COMPLETE", invoice_id="inv_20")
        confirm = client.post("/orders/confirm", json={"api_ref": "REF-H20", "state": "COMPLETE"})

        assert hook.status_code == 200
        assert hook.json()["data"]["tracking_id"] == "inv_20"
        assert confirm.json()["data"]["id"] == hook.json()["data"]["id"]
        assert len(current_domain.repository_for(Order).query.all().items) == 1
        assert get_product(product_id).stock_quantity == 1

    def test_bad_challenge_is_401(self, client, add_product):
        _checkout(client, "REF-H21", add_product())
        response = _webhook(client, "REF-H21", "COMPLETE", challenge="wrong")
        assert response.status_code == 401
        assert current_domain.repository_for(Order).query.all().items == []

    def test_unknown_reference_asks_for_redelivery(self, client):
        response = _webhook(client, "REF-NOPE", "COMPLETE")
        assert response.status_code == 503
        assert response.json()["errors"] == {"api_ref": ["REF-NOPE"]}

    def test_stock_shortfall_asks_for_redelivery(self, client, add_product):
        product_id = add_product(stock=2)
        _checkout(client, "REF-H22", product_id, 2)
        _checkout(client, "REF-H23", product_id, 2)
        _webhook(client, "REF-H22", "COMPLETE")

        response = _webhook(client, "REF-H23", "COMPLETE")

        assert response.status_code == 503
        assert get_product(product_id).stock_quantity == 0

    def test_unknown_fields_are_accepted(self, client, add_product):
        _checkout(client, "REF-H24", add_product())
        response = _webhook(client, "REF-H24", "PENDING", value="10.00", account="acc_1")
        assert response.status_code == 200
        assert response.json()["data"]["payment_status"] == "PENDING"


class TestOrderReads:
    def _paid(self, client, add_product, api_ref):
        _checkout(client, api_ref, add_product())
        return client.post("/orders/confirm", json={"api_ref": api_ref, "state": "COMPLETE"}).json()["data"]

    def test_list_and_lookups(self, client, add_product):
        order = self._paid(client, add_product, "REF-H30")

        assert [o["api_ref"] for o in client.get("/orders").json()["data"]] == ["REF-H30"]
        assert client.get(f"/orders/{order['id']}").json()["data"]["api_ref"] == "REF-H30"
        assert client.get("/orders/ref/REF-H30").json()["data"]["id"] == order["id"]
        assert len(client.get("/orders/customer/amina@example.com").json()["data"]) == 1

    def test_unknown_order_is_404(self, client):
        assert client.get("/orders/missing").status_code == 404
        assert client.get("/orders/ref/missing").status_code == 404

    def test_status_updates(self, client, add_product):
        order = self._paid(client, add_product, "REF-H31")

        by_ref = client.put("/orders/ref/REF-H31/status", json={"status": "FAILED"})
        assert by_ref.json()["data"]["payment_status"] == "FAILED"

        by_id = client.put(f"/orders/{order['id']}/payment-status", json={"status": "COMPLETE"})
        assert by_id.json()["data"]["payment_status"] == "COMPLETE"

    def test_invalid_status_is_400(self, client, add_product):
        self._paid(client, add_product, "REF-H32")
        assert client.put("/orders/ref/REF-H32/status", json={"status": "LOST"}).status_code == 400
