"""Connection pool facade for the pile's SQLite database.

Uses SQLAlchemy's native async support with aiosqlite. The engine owns the
underlying connection pool; this facade adds a semaphore so that no more than
``max_workers`` sessions are borrowed at once, and guarantees that every
borrowed session is closed and its permit returned on every exit path.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, StaticPool

from haystack.config import MEMORY_CONNECTION
from haystack.errors import StoreClosedError


class ConnectionPool:
    """Bounded access to an AsyncEngine.

    An in-memory database lives on a single shared connection (StaticPool),
    so the permit count collapses to one there regardless of ``max_workers``.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        max_workers: int,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self._engine = engine
        self._max_workers = 1 if isinstance(engine.pool, StaticPool) else max_workers
        self._permits = asyncio.Semaphore(self._max_workers)
        self._closed = False
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def closed(self) -> bool:
        return self._closed

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Borrow a session, waiting for a free permit if the pool is saturated."""
        self._ensure_open()
        async with self._permits:
            async with AsyncSession(self._engine, expire_on_commit=False) as session:
                yield session

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """Borrow a connection with a transaction that commits on clean exit."""
        self._ensure_open()
        async with self._permits:
            async with self._engine.begin() as conn:
                yield conn

    async def dispose(self) -> None:
        """Release every pooled connection. Later borrows raise StoreClosedError."""
        if self._closed:
            return
        self._closed = True
        await self._engine.dispose()
        self._logger.debug("connection_pool_disposed")

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError("connection pool has been disposed")


def create_async_engine_from_connection(connection: str, max_workers: int) -> AsyncEngine:
    """Create an async SQLAlchemy engine for a pile connection target.

    Args:
        connection: Empty or ":memory:" for an in-memory database, a path to a
            SQLite file, or a full async SQLite URL containing "://".
        max_workers: Pool size for file-backed databases.

    Returns:
        AsyncEngine instance configured for aiosqlite.

    Raises:
        sqlalchemy.exc.ArgumentError: If a URL is malformed or names a backend
            other than sqlite.
    """
    if connection in ("", MEMORY_CONNECTION):
        # Every session must see the same in-memory database, so share one
        # connection instead of opening a fresh (empty) database per checkout.
        return create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    if "://" in connection:
        url = make_url(connection)
        if url.get_backend_name() != "sqlite":
            raise ArgumentError(f"pile connection URL must use sqlite, not {url.get_backend_name()!r}")
        return create_async_engine(url)
    return create_async_engine(
        f"sqlite+aiosqlite:///{connection}",
        poolclass=AsyncAdaptedQueuePool,
        pool_size=max_workers,
        max_overflow=0,
    )
