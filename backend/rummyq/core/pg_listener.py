"""PostgreSQL LISTEN/NOTIFY loop with keepalive and auto-reconnect."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import asyncpg

LOGGER = logging.getLogger("PgListener")

NotifyHandler = Callable[[asyncpg.Connection, int, str, str], Any]


async def _release(
    pool: asyncpg.Pool, connection: asyncpg.Connection, channel: str, handler: NotifyHandler
) -> None:
    """Detach the listener and hand the connection back, terminating it if that fails."""
    try:
        await connection.remove_listener(channel, handler)
        await pool.release(connection)
    except Exception as e:
        LOGGER.debug(f"Dropping LISTEN connection for '{channel}': {type(e).__name__}")
        connection.terminate()


async def _keepalive(connection: asyncpg.Connection, interval: float) -> None:
    # Shorter than Supavisor's client heartbeat so the proxy keeps the socket
    while True:
        await asyncio.sleep(interval)
        await connection.execute("SELECT 1")


async def pg_listen(
    pool: asyncpg.Pool,
    channel: str,
    handler: NotifyHandler,
    *,
    on_reconnect: Callable[[], Awaitable[Any]] | None = None,
    keepalive_interval: float = 30,
    reconnect_delay: float = 5,
) -> None:
    """Listen on a NOTIFY channel until cancelled.

    Args:
        pool: asyncpg pool. One connection stays checked out while listening.
        channel: NOTIFY channel name.
        handler: asyncpg listener callback ``(connection, pid, channel, payload)``.
        on_reconnect: awaited once LISTEN is back after a failure. Anything
            notified while disconnected is lost, so callers re-read state here.
        keepalive_interval: seconds between ``SELECT 1`` pings.
        reconnect_delay: seconds to wait before reconnecting.
    """
    recovering = False
    while True:
        try:
            connection = await pool.acquire()
        except asyncio.CancelledError:
            break
        except Exception as e:
            LOGGER.error(f"LISTEN '{channel}': could not acquire a connection: {type(e).__name__}: {e}")
        else:
            try:
                await connection.add_listener(channel, handler)
                LOGGER.info(f"PostgreSQL LISTEN active on '{channel}'")
                if recovering and on_reconnect is not None:
                    try:
                        await on_reconnect()
                    except Exception as e:
                        LOGGER.warning(f"Reconnect hook for '{channel}' failed: {type(e).__name__}: {e}")
                recovering = False
                await _keepalive(connection, keepalive_interval)
            except asyncio.CancelledError:
                await _release(pool, connection, channel, handler)
                LOGGER.info(f"PostgreSQL LISTEN '{channel}' stopped")
                break
            except Exception as e:
                LOGGER.error(f"LISTEN '{channel}' lost: {type(e).__name__}: {e}")
                await _release(pool, connection, channel, handler)

        recovering = True
        LOGGER.warning(f"Reconnecting LISTEN '{channel}' in {reconnect_delay}s")
        try:
            await asyncio.sleep(reconnect_delay)
        except asyncio.CancelledError:
            break
