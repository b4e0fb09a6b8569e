"""Integration tests for the cart endpoints via TestClient."""

SESSION = "sess-api-001"


def _add(client, product_id, quantity=1, session_key=SESSION):
    return client.post("/cart/add", json={"session_key": session_key, "product_id": product_id, "quantity": quantity})


class TestCartAPI:
    def test_add_returns_cart(self, client, add_product):
        product_id = add_product(price="10.00", stock=5)
        response = _add(client, product_id, 2)
        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "Item added to cart"
        assert body["data"]["total_amount"] == 20.0
        assert body["data"]["lines"][0]["quantity"] == 2

    def test_view_and_count(self, client, add_product):
        _add(client, add_product(name="A"))
        _add(client, add_product(name="B"))
        assert len(client.get(f"/cart/{SESSION}").json()["data"]["lines"]) == 2
        assert client.get(f"/cart/{SESSION}/count").json()["data"] == 2

    def test_unknown_session_is_empty(self, client):
        data = client.get("/cart/nobody").json()["data"]
        assert data["lines"] == []
        assert data["total_amount"] == 0.0

    def test_update_quantity(self, client, add_product):
        product_id = add_product(stock=5)
        line_id = _add(client, product_id).json()["data"]["lines"][0]["id"]
        response = client.put("/cart/update", json={"session_key": SESSION, "line_id": line_id, "quantity": 4})
        assert response.json()["data"]["lines"][0]["quantity"] == 4

    def test_remove_item(self, client, add_product):
        line_id = _add(client, add_product()).json()["data"]["lines"][0]["id"]
        response = client.delete(f"/cart/item/{line_id}", params={"session_key": SESSION})
        assert response.json()["data"]["lines"] == []

    def test_clear(self, client, add_product):
        _add(client, add_product())
        response = client.delete(f"/cart/clear/{SESSION}")
        assert response.json()["message"] == "Cart cleared"
        assert client.get(f"/cart/{SESSION}/count").json()["data"] == 0


class TestCartErrors:
    def test_out_of_stock_is_400(self, client, add_product):
        response = _add(client, add_product(stock=0))
        assert response.status_code == 400
        assert response.json()["message"] == "Product is out of stock"

    def test_over_stock_is_400_with_available_count(self, client, add_product):
        response = _add(client, add_product(stock=2), quantity=3)
        assert response.status_code == 400
        assert response.json()["errors"] == {"quantity": ["Insufficient stock: 2 available, 3 requested"]}

    def test_unknown_product_is_400(self, client):
        response = _add(client, "missing")
        assert response.status_code == 400
        assert response.json()["message"] == "Product not found: missing"

    def test_zero_quantity_is_400(self, client, add_product):
        response = _add(client, add_product(), quantity=0)
        assert response.status_code == 400

    def test_unknown_line_is_400(self, client, add_product):
        _add(client, add_product())
        response = client.delete("/cart/item/missing", params={"session_key": SESSION})
        assert response.status_code == 400
        assert response.json()["message"] == "Cart item not found: missing"
