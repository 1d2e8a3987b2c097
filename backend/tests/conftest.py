"""
Pytest configuration and shared fixtures for the Order Ledger tests.

Each test gets its own file-backed SQLite database (so concurrent transactions
run on separate connections), a LedgerStore over it, a stub payment authorizer,
and an HTTP client with the store/authorizer dependencies overridden.
"""
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from database import Base, LedgerStore, build_engine
from services.order_service import OrderService
from services.payment_service import StubPaymentAuthorizer


# ── Database Fixtures ────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh SQLite database file per test, schema created."""
    import db_models  # noqa: F401

    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}", busy_timeout=5.0)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine) -> LedgerStore:
    return LedgerStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))


@pytest.fixture
def authorizer() -> StubPaymentAuthorizer:
    """Approving stub with no artificial delay."""
    return StubPaymentAuthorizer(delay_seconds=0)


@pytest.fixture
def order_service(store, authorizer) -> OrderService:
    return OrderService(store, authorizer, max_wait=5.0, timeout=5.0)


# ── Inspector ───────────────────────────────────────────────────────────


class LedgerInspector:
    """
    Short-lived sessions for arranging and asserting database state.

    Every call opens and closes its own session so no transaction (and no
    SQLite write lock) is left open between steps of a test.
    """

    def __init__(self, store: LedgerStore):
        self.store = store

    async def add(self, *rows):
        async with self.store.session() as session:
            session.add_all(rows)
            await session.commit()
        return rows[0] if len(rows) == 1 else rows

    async def stock(self, product_id: int) -> int:
        from db_models import Product
        async with self.store.session() as session:
            res = await session.execute(select(Product.stock).where(Product.id == product_id))
            return res.scalar_one()

    async def count(self, model) -> int:
        async with self.store.session() as session:
            res = await session.execute(select(func.count()).select_from(model))
            return res.scalar_one()

    async def order_status(self, order_id: int) -> str:
        from db_models import Order
        async with self.store.session() as session:
            res = await session.execute(select(Order.status).where(Order.id == order_id))
            return res.scalar_one()

    async def set_order_status(self, order_id: int, status: str) -> None:
        from db_models import Order
        async with self.store.session() as session:
            await session.execute(update(Order).where(Order.id == order_id).values(status=status))
            await session.commit()

    async def set_price(self, product_id: int, price: Decimal) -> None:
        from db_models import Product
        async with self.store.session() as session:
            await session.execute(update(Product).where(Product.id == product_id).values(price=price))
            await session.commit()


@pytest.fixture
def ledger(store) -> LedgerInspector:
    return LedgerInspector(store)


# ── Test Data Fixtures ────────────────────────────────────────────────


@pytest_asyncio.fixture
async def sample_user(ledger):
    """Create a sample customer in the test DB."""
    from db_models import User

    return await ledger.add(User(email="venkat@example.com", password="hashed_password_123"))


@pytest_asyncio.fixture
async def sample_products(ledger) -> dict:
    """Products keyed by a short name: laptop (10), mouse (50), scarce (1), sold_out (0)."""
    from db_models import Product

    laptop, mouse, scarce, sold_out = await ledger.add(
        Product(name="Laptop", price=Decimal("55000.99"), stock=10),
        Product(name="Wireless Mouse", price=Decimal("1200.00"), stock=50),
        Product(name="Keyboard", price=Decimal("800.00"), stock=1),
        Product(name="iPhone", price=Decimal("100000.00"), stock=0),
    )
    return {"laptop": laptop, "mouse": mouse, "scarce": scarce, "sold_out": sold_out}


# ── HTTP Client ───────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(store, authorizer) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, wired to the per-test store and stub authorizer."""
    from main import app
    from deps import get_authorizer, get_ledger_store

    app.dependency_overrides[get_ledger_store] = lambda: store
    app.dependency_overrides[get_authorizer] = lambda: authorizer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
