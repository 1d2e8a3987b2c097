"""
Tests for Pydantic request/response models.

Tests: field validation, camelCase aliases, and Money rendering in JSON.
"""
from decimal import Decimal

import pytest
from pydantic import ValidationError

from models import (
    CreateOrderRequest,
    OrderItemRequest,
    OrderLine,
    OrderReceipt,
    OrderUser,
    OrderView,
    ProductSummary,
)


class TestCreateOrderRequest:

    @pytest.mark.unit
    def test_populated_from_aliases(self):
        req = CreateOrderRequest.model_validate(
            {"userId": 1, "items": [{"productId": 3, "quantity": 2}]}
        )
        assert req.user_id == 1
        assert req.items[0].product_id == 3
        assert req.items[0].quantity == 2

    @pytest.mark.unit
    def test_populated_from_field_names(self):
        req = CreateOrderRequest(user_id=1, items=[OrderItemRequest(product_id=3, quantity=1)])
        assert req.user_id == 1

    @pytest.mark.unit
    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError):
            CreateOrderRequest.model_validate({"userId": 1, "items": []})

    @pytest.mark.unit
    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity_rejected(self, quantity):
        with pytest.raises(ValidationError):
            OrderItemRequest.model_validate({"productId": 1, "quantity": quantity})

    @pytest.mark.unit
    def test_missing_user_rejected(self):
        with pytest.raises(ValidationError):
            CreateOrderRequest.model_validate({"items": [{"productId": 1, "quantity": 1}]})


class TestMoneySerialization:

    @pytest.mark.unit
    def test_json_renders_float_with_aliases(self):
        receipt = OrderReceipt(order_id=5, status="processing", total_amount=Decimal("57400.99"))

        assert receipt.model_dump(mode="json", by_alias=True) == {
            "orderId": 5,
            "status": "processing",
            "totalAmount": 57400.99,
        }

    @pytest.mark.unit
    def test_python_dump_keeps_decimal(self):
        product = ProductSummary(id=1, name="Keyboard", price=Decimal("800.00"), stock=25)
        assert product.model_dump()["price"] == Decimal("800.00")

    @pytest.mark.unit
    def test_order_view_json(self):
        view = OrderView(
            order_id=9,
            status="cancelled",
            total_amount=Decimal("2400.00"),
            created_at="2026-01-01T00:00:00+00:00",
            user=OrderUser(id=1, email="venkat@example.com"),
            items=[OrderLine(product_id=2, product_name="Wireless Mouse", quantity=2, price=Decimal("1200.00"))],
        )

        data = view.model_dump(mode="json", by_alias=True)

        assert data["totalAmount"] == 2400.0
        assert data["createdAt"] == "2026-01-01T00:00:00+00:00"
        assert data["items"] == [
            {"productId": 2, "productName": "Wireless Mouse", "quantity": 2, "price": 1200.0}
        ]
