"""PostgreSQL pool for score reads and writes"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from glowup.config import DATABASE_URL, DB_POOL_MAX_SIZE, DB_POOL_MIN_SIZE, DB_POOL_TIMEOUT

logger = logging.getLogger(__name__)


class Database:
    """
    Owns the connection pool used by glowup.db.queries

    Score writes are short single-row transactions, so the pool stays small.
    Waiting longer than `timeout` for a connection raises PoolTimeout, which
    the retry layer treats as a transient write failure.
    """

    def __init__(
        self,
        connection_string: str = DATABASE_URL,
        min_size: int = DB_POOL_MIN_SIZE,
        max_size: int = DB_POOL_MAX_SIZE,
        timeout: float = DB_POOL_TIMEOUT
    ):
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self._pool: Optional[AsyncConnectionPool] = None

    @property
    def is_ready(self) -> bool:
        return self._pool is not None

    async def init_pool(self) -> None:
        """Open the pool (no-op when already open)"""
        if self._pool is not None:
            return

        logger.info(f"Opening score database pool (min={self.min_size}, max={self.max_size})")
        pool = AsyncConnectionPool(
            self.connection_string,
            min_size=self.min_size,
            max_size=self.max_size,
            timeout=self.timeout,
            kwargs={"application_name": "glowup-scoring"},
            open=False
        )
        await pool.open()
        self._pool = pool

    async def close_pool(self) -> None:
        if self._pool:
            logger.info("Closing score database pool")
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Borrow a connection returning rows as dicts"""
        if not self._pool:
            raise RuntimeError("Score database pool not initialized; call init_pool() first")

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn


# Shared by every query module
db = Database()
