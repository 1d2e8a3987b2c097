"""
Shared FastAPI dependencies.

Centralizes the ledger store, payment authorizer and order service wiring so
routers import from a single place and tests can override any layer.
"""

from __future__ import annotations

from fastapi import Depends

from database import LedgerStore, ledger_store
from services.order_service import OrderService
from services.payment_service import PaymentAuthorizer, get_payment_authorizer


def get_ledger_store() -> LedgerStore:
    return ledger_store


def get_authorizer() -> PaymentAuthorizer:
    """The configured payment authorizer (fresh per request; nothing is shared)."""
    return get_payment_authorizer()


def get_order_service(
    store: LedgerStore = Depends(get_ledger_store),
    authorizer: PaymentAuthorizer = Depends(get_authorizer),
) -> OrderService:
    return OrderService(store, authorizer)
