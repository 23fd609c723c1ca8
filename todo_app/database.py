import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from todo_app.errors import DatabaseConnectionError

logger = logging.getLogger(__name__)

Base = declarative_base()


class Pool:
    """
    Bounded set of database connections shared by every request.

    Holds the engine and its session factory; safe to share between
    concurrent tasks since checkout is synchronized by SQLAlchemy's pool.
    """

    def __init__(self, engine: AsyncEngine, acquire_timeout: float) -> None:
        self.engine = engine
        self.acquire_timeout = acquire_timeout
        self._sessionmaker = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._sessionmaker() as session:
            yield session

    async def dispose(self) -> None:
        await self.engine.dispose()


class LazyPool:
    """
    Builds the shared Pool the first time it is needed, once per process.

    Concurrent first callers wait on the same lock, so only one of them runs
    `factory`. If the factory fails, nothing is stored and the next caller
    tries again.
    """

    def __init__(self, factory: Callable[[], Awaitable[Pool]], pool: Optional[Pool] = None) -> None:
        self._factory = factory
        self._pool = pool
        self._lock: Optional[asyncio.Lock] = None

    @property
    def ready(self) -> bool:
        return self._pool is not None

    async def get(self) -> Pool:
        if self._pool is None:
            if self._lock is None:
                self._lock = asyncio.Lock()
            async with self._lock:
                if self._pool is None:
                    self._pool = await self._factory()
        return self._pool

    async def dispose(self) -> None:
        if self._pool is not None:
            pool, self._pool = self._pool, None
            await pool.dispose()


async def acquire_pool(
    connection_string: str,
    max_connections: int = 5,
    acquire_timeout: float = 30.0,
) -> Pool:
    """
    Create the shared pool and check that the database answers.

    Raises DatabaseConnectionError if the URL is invalid or no connection
    could be opened within `acquire_timeout` seconds.
    """
    try:
        url = make_url(connection_string)
        engine = create_async_engine(
            url,
            pool_size=max_connections,
            max_overflow=0,
            pool_timeout=acquire_timeout,
            pool_pre_ping=True,
        )
    except (ArgumentError, TypeError, ValueError) as exc:
        raise DatabaseConnectionError(f"invalid database configuration: {exc}") from exc

    logger.info(
        "Connecting to database",
        extra={"database_url": url.render_as_string(hide_password=True)},
    )
    try:
        await asyncio.wait_for(_ping(engine), timeout=acquire_timeout)
    except asyncio.TimeoutError as exc:
        await engine.dispose()
        raise DatabaseConnectionError(
            f"database did not answer within {acquire_timeout}s"
        ) from exc
    except (SQLAlchemyError, OSError) as exc:
        await engine.dispose()
        raise DatabaseConnectionError(f"cannot connect to database: {exc}") from exc

    return Pool(engine, acquire_timeout)


async def _ping(engine: AsyncEngine) -> None:
    async with engine.connect():
        pass
