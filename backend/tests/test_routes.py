"""
Tests for API route endpoints.

Tests: health, product listing, order create/fetch/cancel, and the mapping of
domain errors to status codes and the error envelope.
"""
import pytest

from db_models import Order


class TestHealthEndpoint:
    """Tests for GET /health."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health_returns_ok(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "db": "healthy"}

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health_reports_unhealthy_db(self, client, monkeypatch):
        import routes.health

        async def broken(store=None):
            return False

        monkeypatch.setattr(routes.health, "check_connection", broken)
        response = await client.get("/health")
        assert response.status_code == 503
        assert response.json()["db"] == "unhealthy"


class TestProductEndpoints:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_list_products(self, client, sample_products):
        response = await client.get("/api/products")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["meta"]["total"] == 4
        laptop = body["data"][0]
        assert laptop == {"id": sample_products["laptop"].id, "name": "Laptop", "price": 55000.99, "stock": 10}


class TestOrderEndpoints:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_create_order(self, client, sample_user, sample_products):
        response = await client.post(
            "/api/orders",
            json={
                "userId": sample_user.id,
                "items": [{"productId": sample_products["mouse"].id, "quantity": 2}],
            },
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "processing"
        assert data["totalAmount"] == 2400.0
        assert isinstance(data["orderId"], int)

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"items": [{"productId": 1, "quantity": 1}]},
            {"userId": 1, "items": []},
            {"userId": 1, "items": [{"productId": 1, "quantity": 0}]},
            {"userId": 1, "items": [{"quantity": 1}]},
        ],
    )
    async def test_create_order_rejects_malformed_body(self, client, ledger, payload):
        response = await client.post("/api/orders", json=payload)
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["error"]["code"] == "validation"
        assert await ledger.count(Order) == 0

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_insufficient_stock_is_400(self, client, sample_user, sample_products):
        response = await client.post(
            "/api/orders",
            json={
                "userId": sample_user.id,
                "items": [{"productId": sample_products["scarce"].id, "quantity": 2}],
            },
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "insufficient_stock"
        assert error["details"] == {"product": "Keyboard", "available": 1, "requested": 2}

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self, client, sample_products):
        response = await client.post(
            "/api/orders",
            json={"userId": 999, "items": [{"productId": sample_products["mouse"].id, "quantity": 1}]},
        )
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "user_not_found"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_declined_payment_is_400(self, client, authorizer, ledger, sample_user, sample_products):
        authorizer.approve = False
        response = await client.post(
            "/api/orders",
            json={"userId": sample_user.id, "items": [{"productId": sample_products["mouse"].id, "quantity": 1}]},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "payment_failed"
        assert await ledger.count(Order) == 0

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_order(self, client, sample_user, sample_products):
        created = await client.post(
            "/api/orders",
            json={"userId": sample_user.id, "items": [{"productId": sample_products["laptop"].id, "quantity": 1}]},
        )
        order_id = created.json()["data"]["orderId"]

        response = await client.get(f"/api/orders/{order_id}")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["orderId"] == order_id
        assert data["totalAmount"] == 55000.99
        assert data["user"] == {"id": sample_user.id, "email": "venkat@example.com"}
        assert data["items"] == [
            {
                "productId": sample_products["laptop"].id,
                "productName": "Laptop",
                "quantity": 1,
                "price": 55000.99,
            }
        ]
        assert "createdAt" in data

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_get_unknown_order_is_404(self, client):
        response = await client.get("/api/orders/4040")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "order_not_found"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_invalid_order_id_is_400(self, client):
        response = await client.get("/api/orders/abc")
        assert response.status_code == 400

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_cancel_order_twice(self, client, ledger, sample_user, sample_products):
        mouse = sample_products["mouse"]
        created = await client.post(
            "/api/orders",
            json={"userId": sample_user.id, "items": [{"productId": mouse.id, "quantity": 5}]},
        )
        order_id = created.json()["data"]["orderId"]

        first = await client.put(f"/api/orders/{order_id}/cancel")
        second = await client.put(f"/api/orders/{order_id}/cancel")

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["data"] == {"orderId": order_id, "status": "cancelled"}
        assert second.json()["data"] == first.json()["data"]
        assert await ledger.stock(mouse.id) == 50

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_cancel_shipped_is_400(self, client, ledger, sample_user, sample_products):
        created = await client.post(
            "/api/orders",
            json={"userId": sample_user.id, "items": [{"productId": sample_products["mouse"].id, "quantity": 1}]},
        )
        order_id = created.json()["data"]["orderId"]
        await ledger.set_order_status(order_id, "shipped")

        response = await client.put(f"/api/orders/{order_id}/cancel")
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "not_cancelable"
        assert error["details"] == {"status": "shipped"}

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_cancel_unknown_order_is_404(self, client):
        response = await client.put("/api/orders/31337/cancel")
        assert response.status_code == 404
