"""asyncpg pool lifecycle for the queue database.

Supabase exposes two poolers. Only the Session Pooler (port 5432) keeps a
server connection per client, which LISTEN needs; the Transaction Pooler
(port 6543) works for reads and writes but drops notifications.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)

TRANSACTION_POOLER_PORT = ":6543"


@dataclass
class PoolConfig:
    min_size: int = 1
    # Each live subscription pins one connection for its LISTEN loop
    max_size: int = 6
    timeout: float = 5.0
    command_timeout: float = 15.0
    max_retries: int = 3
    retry_delay: float = 1.0
    ssl: str | None = "require"
    keepalive_idle: int = 30


class DatabaseManager:
    """Owns one asyncpg pool: connect with backoff, probe, close."""

    def __init__(self, database_url: str, config: PoolConfig | None = None):
        self.database_url = database_url
        self.config = config or PoolConfig()
        self._pool: asyncpg.Pool | None = None

    @property
    def uses_transaction_pooler(self) -> bool:
        return TRANSACTION_POOLER_PORT in self.database_url

    def pool_kwargs(self) -> dict[str, Any]:
        cfg = self.config
        kwargs: dict[str, Any] = {
            "dsn": self.database_url,
            "min_size": cfg.min_size,
            "max_size": cfg.max_size,
            "timeout": cfg.timeout,
            "command_timeout": cfg.command_timeout,
            "ssl": cfg.ssl,
            "server_settings": {
                "statement_timeout": str(int(cfg.command_timeout * 1000)),
                "tcp_keepalives_idle": str(cfg.keepalive_idle),
            },
        }
        if self.uses_transaction_pooler:
            # Prepared statements do not survive connection hand-offs
            kwargs.update(min_size=0, statement_cache_size=0)
        return kwargs

    async def connect(self) -> None:
        """Create the pool, retrying with exponential backoff."""
        if self._pool is not None:
            return
        if self.uses_transaction_pooler:
            logger.warning("Transaction Pooler URL: live change subscriptions will not work")

        cfg = self.config
        kwargs = self.pool_kwargs()
        for attempt in range(1, cfg.max_retries + 1):
            try:
                pool = await asyncpg.create_pool(**kwargs)
            except Exception as e:
                if attempt == cfg.max_retries:
                    logger.error(
                        f"Database connection failed after {attempt} attempts: "
                        f"{type(e).__name__}: {e or repr(e)}"
                    )
                    raise
                delay = cfg.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Database connection attempt {attempt}/{cfg.max_retries} failed "
                    f"({type(e).__name__}), retrying in {delay}s"
                )
                await asyncio.sleep(delay)
                continue
            self._pool = pool
            logger.info(f"Database pool ready ({kwargs['min_size']}-{cfg.max_size} connections)")
            return

    async def disconnect(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        try:
            await pool.close()
            logger.info("Database pool closed")
        except Exception as e:
            logger.warning(f"Error closing database pool: {type(e).__name__}: {e}")

    async def check_health(self) -> bool:
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire(timeout=2.0) as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception:
            return False

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self._pool
