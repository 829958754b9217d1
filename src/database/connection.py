"""Database connection pool management with asyncpg."""
from contextlib import asynccontextmanager
from typing import AsyncIterator
import asyncio
import logging

import asyncpg
from asyncpg import Pool

from src.config import Settings
from src.database.errors import (
    CONNECTIVITY_ERRORS,
    ConnectivityError,
    PoolExhausted,
)

logger = logging.getLogger(__name__)


class TaskPool:
    """Bounded pool of PostgreSQL connections with an explicit lifecycle.

    Callers borrow a connection with ``async with pool.acquire() as conn``;
    the connection goes back to the pool on every exit path. When all
    ``max_size`` connections are in use, callers wait (without blocking the
    event loop) for up to ``acquire_timeout`` seconds before failing with
    ``PoolExhausted``.
    """

    def __init__(self, settings: Settings) -> None:
        self.host = settings.db_host
        self.port = settings.db_port
        self.user = settings.db_user
        self.password = settings.db_password
        self.database = settings.db_name
        self.min_size = settings.db_pool_min_size
        self.max_size = settings.db_pool_max_size
        self.acquire_timeout = settings.db_acquire_timeout
        self.command_timeout = settings.db_command_timeout
        self.connect_timeout = settings.db_connect_timeout
        self.probe_timeout = settings.db_probe_timeout
        self._pool: Pool | None = None

    @property
    def initialized(self) -> bool:
        return self._pool is not None

    async def init(self) -> None:
        """Create the driver pool and probe the database once.

        An unreachable database is logged, not raised: later acquire()
        calls retry the connection through the driver.
        """
        if self._pool is not None:
            return
        try:
            self._pool = await self._create_driver_pool(self.min_size)
        except (asyncio.TimeoutError, *CONNECTIVITY_ERRORS) as e:
            # Only reachable with min_size > 0, where the driver connects eagerly.
            logger.warning(f"Database pool could not pre-connect: {e}")
            self._pool = await self._create_driver_pool(0)
        logger.info(
            f"Database pool initialized for {self.user}@{self.host}:{self.port}/{self.database} "
            f"(max_size={self.max_size})"
        )
        await self.probe()

    async def _create_driver_pool(self, min_size: int) -> Pool:
        return await asyncpg.create_pool(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
            min_size=min_size,
            max_size=self.max_size,
            command_timeout=self.command_timeout,
            timeout=self.connect_timeout,
        )

    async def probe(self) -> bool:
        """Run a diagnostic query. Returns True if the database answered."""
        return await self.check() == "connected"

    async def check(self) -> str:
        """Report "connected", "busy" or "unavailable" without a long wait.

        Uses ``probe_timeout`` instead of the request acquire timeout, so a
        saturated pool is reported as busy rather than blocking the caller.
        """
        try:
            async with self.acquire("probe", timeout=self.probe_timeout) as conn:
                await conn.fetchval("SELECT 1")
        except PoolExhausted as e:
            logger.warning(f"Database pool is busy: {e}")
            return "busy"
        except Exception as e:
            logger.warning(f"Database is unreachable: {e}")
            return "unavailable"
        logger.info("Connected to PostgreSQL database")
        return "connected"

    @asynccontextmanager
    async def acquire(
        self,
        operation: str = "acquire",
        timeout: float | None = None,
    ) -> AsyncIterator[asyncpg.Connection]:
        """Borrow one connection for the duration of the ``async with`` block."""
        pool = self._pool
        if pool is None:
            raise ConnectivityError("Database pool is not initialized", operation)

        wait = self.acquire_timeout if timeout is None else timeout
        try:
            conn = await pool.acquire(timeout=wait)
        except asyncio.TimeoutError as e:
            raise PoolExhausted(
                f"No database connection available after {wait}s",
                operation,
            ) from e
        except CONNECTIVITY_ERRORS as e:
            raise ConnectivityError(f"Cannot connect to database: {e}", operation) from e

        try:
            yield conn
        finally:
            # The driver pool it came from, even if shutdown() has begun.
            await pool.release(conn)

    async def release(self, conn: asyncpg.Connection) -> None:
        """Return a connection to the pool."""
        if self._pool is not None:
            await self._pool.release(conn)

    async def shutdown(self) -> None:
        """Close the database connection pool.

        Waits for borrowed connections to come back before closing.
        """
        if self._pool is not None:
            pool, self._pool = self._pool, None
            await pool.close()
            logger.info("Database pool closed")
