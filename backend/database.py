"""
Database engine, session management and the transactional ledger store.

Uses SQLAlchemy async engine (aiosqlite in development, asyncpg-compatible URLs
in production). Tables are auto-created on server startup via init_db().

SQLite notes:
    The sqlite3 driver's implicit BEGIN is disabled and every transaction opens
    with BEGIN IMMEDIATE, so concurrent writers queue on the database lock and
    re-read committed stock instead of racing on a stale snapshot.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings
from domain.errors import TransactionSlotUnavailableError, TransactionTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Engine ──────────────────────────────────────────────────────────

def to_async_url(raw_url: str) -> str:
    """Convert sqlite:///... → sqlite+aiosqlite:///... for the async driver."""
    if raw_url.startswith("sqlite:///"):
        return raw_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if raw_url.startswith("postgresql://"):
        return raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return raw_url


def configure_sqlite(engine: AsyncEngine) -> None:
    """Enable foreign keys and BEGIN IMMEDIATE transactions on a SQLite engine."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Hand transaction control to SQLAlchemy; the "begin" hook issues BEGIN.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, *, busy_timeout: float | None = None, **kwargs) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    For SQLite, busy_timeout is how long a connection waits for the database
    write lock before giving up (sqlite3's `timeout` argument).
    """
    async_url = to_async_url(url)
    if async_url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        if busy_timeout is not None:
            connect_args.setdefault("timeout", busy_timeout)
        engine = create_async_engine(async_url, connect_args=connect_args, **kwargs)
        configure_sqlite(engine)
        return engine
    return create_async_engine(async_url, **kwargs)


engine = build_engine(
    settings.database_url,
    busy_timeout=settings.transaction_max_wait_seconds,
    echo=(settings.environment == "development" and settings.log_level.upper() == "DEBUG"),
    future=True,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# ── Ledger store ────────────────────────────────────────────────────

class LedgerStore:
    """
    Transaction facility over an async session factory.

    A unit of work is an async callable taking the session. It either commits
    all of its writes or none of them.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Plain session for read-only work; closed (and rolled back) on exit."""
        async with self._session_factory() as session:
            yield session

    async def with_transaction(
        self,
        work: Callable[[AsyncSession], Awaitable[T]],
        *,
        isolation_level: str | None = None,
        max_wait: float | None = None,
        timeout: float | None = None,
    ) -> T:
        """
        Run `work` inside one transaction.

        Raises:
            TransactionSlotUnavailableError: the transaction could not be opened
                within `max_wait` seconds.
            TransactionTimeoutError: `work` ran longer than `timeout` seconds.
                The commit itself is not covered by `timeout`; once `work`
                returns, the commit runs to completion so its outcome is
                never left unknown.
            Anything `work` raises, after the transaction is rolled back.
        """
        async with self._session_factory() as session:
            try:
                await self._begin(session, isolation_level, max_wait)
                try:
                    result = await asyncio.wait_for(work(session), timeout=timeout)
                except asyncio.TimeoutError as exc:
                    raise TransactionTimeoutError(timeout) from exc
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            return result

    async def _begin(self, session: AsyncSession, isolation_level: str | None, max_wait: float | None) -> None:
        options = None
        # SQLite transactions are serializable via BEGIN IMMEDIATE.
        if isolation_level and session.bind.dialect.name != "sqlite":
            options = {"isolation_level": isolation_level}
        try:
            await asyncio.wait_for(
                session.connection(execution_options=options),
                timeout=max_wait,
            )
        except (asyncio.TimeoutError, OperationalError) as exc:
            logger.warning(f"Transaction slot unavailable after {max_wait}s: {exc}")
            raise TransactionSlotUnavailableError(max_wait) from exc


ledger_store = LedgerStore(async_session)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db() -> None:
    """Create all tables. Called once on server startup."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created (or already exist)")


async def check_connection(store: LedgerStore | None = None) -> bool:
    """Run a trivial query; used by the health endpoint."""
    store = store or ledger_store
    try:
        async with store.session() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connectivity check failed: {e}")
        return False

