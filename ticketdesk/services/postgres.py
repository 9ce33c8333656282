from __future__ import annotations

import logging
from dataclasses import dataclass

import asyncpg

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PostgresPoolManager:
    """Owns the asyncpg pool shared by the ticket repository."""

    dsn: str
    min_size: int = 1
    max_size: int = 10
    _pool: asyncpg.Pool | None = None

    async def get_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                dsn=self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
            )
        return self._pool

    async def check_connection(self) -> str:
        """Round-trip to the server and return its version string."""

        pool = await self.get_pool()
        async with pool.acquire() as connection:
            version = await connection.fetchval("SHOW server_version")
        logger.info("Connected to PostgreSQL %s", version)
        return str(version)

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
