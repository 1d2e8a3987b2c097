"""
Pydantic models for request/response validation.
"""
from decimal import Decimal
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer


# Fixed-point amounts are kept as Decimal internally and rendered as JSON numbers.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class LedgerBase(BaseModel):
    """Shared base: allows construction by Python name or alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Order Requests ──────────────────────────────────────────────────

class OrderItemRequest(LedgerBase):
    """One requested line: product and a positive quantity."""
    product_id: int = Field(..., gt=0, alias="productId")
    quantity: int = Field(..., gt=0)


class CreateOrderRequest(LedgerBase):
    user_id: int = Field(..., gt=0, alias="userId")
    items: List[OrderItemRequest] = Field(
        ...,
        min_length=1,
        description="Requested lines, processed in the order given",
    )


# ── Order Responses ─────────────────────────────────────────────────

class OrderReceipt(LedgerBase):
    """Result of a successful order creation."""
    order_id: int = Field(..., alias="orderId")
    status: str
    total_amount: Money = Field(..., alias="totalAmount")


class CancellationReceipt(LedgerBase):
    order_id: int = Field(..., alias="orderId")
    status: str


class OrderUser(LedgerBase):
    id: int
    email: str


class OrderLine(LedgerBase):
    product_id: int = Field(..., alias="productId")
    product_name: str = Field(..., alias="productName")
    quantity: int
    price: Money = Field(..., description="Unit price captured at order time")


class OrderView(LedgerBase):
    """Full order detail as returned by GET /api/orders/{id}."""
    order_id: int = Field(..., alias="orderId")
    status: str
    total_amount: Money = Field(..., alias="totalAmount")
    created_at: str = Field(..., alias="createdAt", description="ISO-8601 creation time")
    user: OrderUser
    items: List[OrderLine]


# ── Products ────────────────────────────────────────────────────────

class ProductSummary(LedgerBase):
    id: int
    name: str
    price: Money
    stock: int
