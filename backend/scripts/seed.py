"""
Seed the database with demo users and products.

Usage:
    cd backend && python -m scripts.seed

Idempotent: rows are matched by email / product name and only inserted when
missing.
"""
import asyncio
import logging
import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select  # noqa: E402

from database import LedgerStore, init_db, ledger_store  # noqa: E402
from db_models import User, Product  # noqa: E402

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"email": "venkat@example.com", "password": "hashed_password_123"},
    {"email": "sai@example.com", "password": "hashed_password_456"},
]

DEMO_PRODUCTS = [
    {"name": "Laptop", "price": Decimal("55000.99"), "stock": 10},
    {"name": "Wireless Mouse", "price": Decimal("1200.00"), "stock": 50},
    {"name": "USB-C Cable", "price": Decimal("1700.00"), "stock": 100},
    {"name": "Keyboard", "price": Decimal("800.00"), "stock": 25},
    {"name": "iPhone", "price": Decimal("100000.00"), "stock": 0},
]


async def seed(store: LedgerStore) -> dict:
    """Insert missing demo rows. Returns counts of rows inserted."""

    async def work(session) -> dict:
        inserted = {"users": 0, "products": 0}
        for row in DEMO_USERS:
            res = await session.execute(select(User).where(User.email == row["email"]))
            if res.scalar_one_or_none() is None:
                session.add(User(**row))
                inserted["users"] += 1
        for row in DEMO_PRODUCTS:
            res = await session.execute(select(Product).where(Product.name == row["name"]))
            if res.scalar_one_or_none() is None:
                session.add(Product(**row))
                inserted["products"] += 1
        await session.flush()
        return inserted

    return await store.with_transaction(work)


async def main() -> None:
    os.makedirs("data", exist_ok=True)
    await init_db()
    inserted = await seed(ledger_store)
    logger.info(f"Seed complete: {inserted['users']} users, {inserted['products']} products inserted")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    asyncio.run(main())
