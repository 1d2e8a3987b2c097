"""
Order service — transactional order creation, cancellation and detail lookup.

Creation runs stock validation, inventory decrement, order + line item
persistence, payment authorization and the payment record inside ONE
transaction: a declined payment rolls back every stock decrement. Cancellation
restores stock and flips the status atomically, and is idempotent.

Each attempt is tagged with a correlation id (see services.trace).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from config import settings as default_settings
from database import LedgerStore
from db_models import User, Product, Order, OrderItem, Payment
from domain.constants import CANCEL_TXN_PREFIX, CREATE_TXN_PREFIX, MONEY_QUANTUM
from domain.enums import CANCELABLE_STATUSES, OrderStatus, PaymentStatus
from domain.errors import (
    InsufficientStockError,
    NotCancelableError,
    OrderNotFoundError,
    PaymentFailedError,
    ProductNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from models import (
    CancellationReceipt,
    OrderItemRequest,
    OrderLine,
    OrderReceipt,
    OrderUser,
    OrderView,
)
from services import trace
from services.payment_service import PaymentAuthorizer, PaymentGatewayError

logger = logging.getLogger(__name__)


def _money(value) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANTUM)


def _utc_isoformat(value: datetime) -> str:
    # Timestamps are stored as naive UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _as_item_request(item) -> OrderItemRequest:
    """Accept request models, dicts or (product_id, quantity) pairs."""
    if isinstance(item, OrderItemRequest):
        return item
    if isinstance(item, (tuple, list)):
        product_id, quantity = item
        return OrderItemRequest(product_id=product_id, quantity=quantity)
    return OrderItemRequest.model_validate(item)


class OrderService:
    """
    Order lifecycle engine.

    The store and payment authorizer are injected; nothing is held between
    calls, all state lives in the store.
    """

    def __init__(
        self,
        store: LedgerStore,
        payment_authorizer: PaymentAuthorizer,
        *,
        max_wait: float | None = None,
        timeout: float | None = None,
        isolation_level: str | None = None,
    ):
        self.store = store
        self.payment_authorizer = payment_authorizer
        self.max_wait = default_settings.transaction_max_wait_seconds if max_wait is None else max_wait
        self.timeout = default_settings.transaction_timeout_seconds if timeout is None else timeout
        self.isolation_level = isolation_level or default_settings.transaction_isolation_level

    async def _run(self, work):
        return await self.store.with_transaction(
            work,
            isolation_level=self.isolation_level,
            max_wait=self.max_wait,
            timeout=self.timeout,
        )

    # ── Creation ────────────────────────────────────────────────────

    async def create_order(self, user_id: int, items: Iterable[OrderItemRequest]) -> OrderReceipt:
        """
        Create an order in `processing` status with its items and a succeeded payment.

        Items are processed in the order given. Fails with no persisted side
        effects on: unknown user/product, insufficient stock, declined payment,
        or a transaction slot/timeout failure. Never retried here.
        """
        items = [_as_item_request(i) for i in items]
        if not items:
            raise ValidationError("at least one item is required", field="items")

        txn_id = trace.new_correlation_id(CREATE_TXN_PREFIX)
        trace.emit(
            "TRANSACTION_START",
            txn_id,
            userId=user_id,
            items=[{"productId": i.product_id, "quantity": i.quantity} for i in items],
        )

        async def work(session: AsyncSession) -> OrderReceipt:
            user = await session.get(User, user_id)
            if not user:
                raise UserNotFoundError(user_id)

            lines: list[OrderItem] = []
            total = Decimal("0.00")
            for item in items:
                product = await self._lock_product(session, item.product_id)
                if product.stock < item.quantity:
                    trace.emit_error(
                        "INVENTORY_CHECK_FAILED",
                        txn_id,
                        productId=product.id,
                        requested=item.quantity,
                        available=product.stock,
                    )
                    raise InsufficientStockError(product.name, product.stock, item.quantity)

                trace.emit("INVENTORY_CHECK_SUCCESS", txn_id, productId=product.id, quantity=item.quantity)

                price = _money(product.price)
                lines.append(OrderItem(product_id=product.id, quantity=item.quantity, price=price))
                total += price * item.quantity

                await self._decrement_stock(session, product, item.quantity, txn_id)

            total = _money(total)
            order = Order(
                user_id=user.id,
                status=OrderStatus.PROCESSING.value,
                total_amount=total,
                items=lines,
            )
            session.add(order)
            await session.flush()
            trace.emit("ORDER_CREATED", txn_id, orderId=order.id, totalAmount=total)

            try:
                result = await self.payment_authorizer.authorize(total, order.id)
            except PaymentGatewayError as e:
                trace.emit_error("PAYMENT_FAILURE", txn_id, orderId=order.id, error=str(e))
                raise PaymentFailedError(
                    "Payment processing failed: authorizer unavailable",
                    details={"order_ref": order.id},
                ) from e

            if not result.approved:
                trace.emit_error("PAYMENT_FAILURE", txn_id, orderId=order.id, reason=result.reason)
                raise PaymentFailedError(details={"reason": result.reason} if result.reason else None)

            session.add(
                Payment(
                    order_id=order.id,
                    amount=total,
                    status=PaymentStatus.SUCCEEDED.value,
                    reference=result.reference,
                )
            )
            await session.flush()
            trace.emit("PAYMENT_SUCCESS", txn_id, orderId=order.id, reference=result.reference)

            return OrderReceipt(order_id=order.id, status=order.status, total_amount=total)

        try:
            receipt = await self._run(work)
        except Exception as e:
            trace.emit_error("TRANSACTION_ROLLBACK", txn_id, error=str(e))
            raise

        trace.emit("TRANSACTION_COMMIT", txn_id, orderId=receipt.order_id)
        return receipt

    async def _lock_product(self, session: AsyncSession, product_id: int) -> Product:
        res = await session.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        product = res.scalar_one_or_none()
        if not product:
            raise ProductNotFoundError(product_id)
        return product

    async def _decrement_stock(self, session: AsyncSession, product: Product, quantity: int, txn_id: str) -> None:
        """Guarded decrement: never lets stock go below zero."""
        res = await session.execute(
            update(Product)
            .where(Product.id == product.id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount == 0:
            await session.refresh(product, attribute_names=["stock"])
            trace.emit_error(
                "INVENTORY_CHECK_FAILED",
                txn_id,
                productId=product.id,
                requested=quantity,
                available=product.stock,
            )
            raise InsufficientStockError(product.name, product.stock, quantity)

    # ── Detail ──────────────────────────────────────────────────────

    async def get_order_details(self, order_id: int) -> OrderView:
        """Read-only view of an order; item prices are the order-time snapshots."""
        async with self.store.session() as session:
            res = await session.execute(
                select(Order)
                .where(Order.id == order_id)
                .options(
                    selectinload(Order.user),
                    selectinload(Order.items).selectinload(OrderItem.product),
                )
            )
            order = res.scalar_one_or_none()
            if not order:
                raise OrderNotFoundError(order_id)

            return OrderView(
                order_id=order.id,
                status=order.status,
                total_amount=_money(order.total_amount),
                created_at=_utc_isoformat(order.created_at),
                user=OrderUser(id=order.user.id, email=order.user.email),
                items=[
                    OrderLine(
                        product_id=item.product.id,
                        product_name=item.product.name,
                        quantity=item.quantity,
                        price=_money(item.price),
                    )
                    for item in order.items
                ],
            )

    # ── Cancellation ────────────────────────────────────────────────

    async def cancel_order(self, order_id: int) -> CancellationReceipt:
        """
        Cancel an order and restore the stock held by its items.

        Idempotent: an already-cancelled order is returned unchanged without
        touching inventory. Shipped/delivered orders raise NotCancelableError.
        Payment records are left as they are.
        """
        txn_id = trace.new_correlation_id(CANCEL_TXN_PREFIX)
        trace.emit("CANCEL_TRANSACTION_START", txn_id, orderId=order_id)

        async def work(session: AsyncSession) -> CancellationReceipt:
            res = await session.execute(
                select(Order)
                .where(Order.id == order_id)
                .options(selectinload(Order.items))
                .with_for_update()
            )
            order = res.scalar_one_or_none()
            if not order:
                raise OrderNotFoundError(order_id)

            if order.status == OrderStatus.CANCELLED.value:
                trace.emit("ORDER_ALREADY_CANCELLED", txn_id, orderId=order.id)
                return CancellationReceipt(order_id=order.id, status=order.status)

            if order.status not in CANCELABLE_STATUSES:
                raise NotCancelableError(order.status)

            for item in order.items:
                await session.execute(
                    update(Product)
                    .where(Product.id == item.product_id)
                    .values(stock=Product.stock + item.quantity)
                    .execution_options(synchronize_session=False)
                )
                trace.emit(
                    "INVENTORY_RESTORED",
                    txn_id,
                    productId=item.product_id,
                    quantity=item.quantity,
                )

            order.status = OrderStatus.CANCELLED.value
            await session.flush()
            return CancellationReceipt(order_id=order.id, status=order.status)

        try:
            receipt = await self._run(work)
        except Exception as e:
            trace.emit_error("CANCEL_TRANSACTION_ROLLBACK", txn_id, orderId=order_id, error=str(e))
            raise

        trace.emit("CANCEL_TRANSACTION_COMMIT", txn_id, orderId=order_id)
        return receipt
