"""RemoteStore backed by PostgreSQL (Supabase) and LISTEN/NOTIFY."""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import asyncpg

from rummyq.core.config import Settings
from rummyq.core.pg_listener import pg_listen
from shared.database import DatabaseManager, PoolConfig
from shared.migrations import MigrationRunner
from shared.models.queue import Game, Player
from shared.repositories import GameRepository, QueueRepository

from .errors import SetupRequiredError
from .events import ChangeEvent, EntityKind
from .storage import ChangeHandler

logger = logging.getLogger(__name__)

QUEUE_CHANNEL = "queue_changes"
GAME_CHANNEL = "game_changes"


def _setup_aware(func):
    """Translate a missing-table error into SetupRequiredError."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return await func(*args, **kwargs)
        except asyncpg.UndefinedTableError as e:
            raise SetupRequiredError(getattr(e, "table_name", None)) from e

    return wrapper


class ListenerSubscription:
    """Cancelable handle for one background LISTEN task."""

    def __init__(self, channel: str, task: asyncio.Task) -> None:
        self.channel = channel
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()
            logger.debug(f"Subscription on '{self.channel}' cancelled")


class PostgresRemote:
    """Storage contract implementation over asyncpg repositories."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db
        # Awaited after a dropped LISTEN connection comes back
        self.on_reconnect: Callable[[], Awaitable[Any]] | None = None

    @property
    def queue_repo(self) -> QueueRepository:
        return QueueRepository(self.db.pool)

    @property
    def game_repo(self) -> GameRepository:
        return GameRepository(self.db.pool)

    # --- reads ---

    @_setup_aware
    async def list_queue(self, limit: int | None = None) -> list[Player]:
        return await self.queue_repo.list_rows(limit)

    @_setup_aware
    async def list_games(self) -> list[Game]:
        return await self.game_repo.list_rows()

    # --- queue writes ---

    @_setup_aware
    async def insert_queue_row(self, player: Player) -> None:
        await self.queue_repo.insert_row(player)

    @_setup_aware
    async def delete_queue_row(self, player_id: str) -> None:
        await self.queue_repo.delete_row(player_id)

    @_setup_aware
    async def update_queue_row(self, player_id: str, fields: dict[str, Any]) -> None:
        await self.queue_repo.update_row(player_id, fields)

    @_setup_aware
    async def delete_queue_rows(self, player_ids: list[str]) -> None:
        await self.queue_repo.delete_rows(player_ids)

    @_setup_aware
    async def upsert_queue_rows(self, players: list[Player]) -> None:
        await self.queue_repo.upsert_rows(players)

    # --- game writes ---

    @_setup_aware
    async def insert_game_row(self, game: Game) -> str:
        return await self.game_repo.insert_row(game)

    @_setup_aware
    async def delete_game_row(self, game_id: str) -> None:
        await self.game_repo.delete_row(game_id)

    @_setup_aware
    async def update_game_row(self, game_id: str, fields: dict[str, Any]) -> None:
        await self.game_repo.update_row(game_id, fields)

    # --- change feeds ---

    def subscribe_queue_changes(self, handler: ChangeHandler) -> ListenerSubscription:
        return self._subscribe(QUEUE_CHANNEL, EntityKind.PLAYER, handler)

    def subscribe_game_changes(self, handler: ChangeHandler) -> ListenerSubscription:
        return self._subscribe(GAME_CHANNEL, EntityKind.GAME, handler)

    def _subscribe(
        self, channel: str, entity: EntityKind, handler: ChangeHandler
    ) -> ListenerSubscription:
        async def on_notify(connection, pid, channel_name, payload) -> None:
            try:
                event = ChangeEvent.from_payload(entity, payload)
            except ValueError as e:
                logger.warning(f"[NOTIFY] Dropping payload on '{channel_name}': {e}")
                return
            result = handler(event)
            if inspect.isawaitable(result):
                await result

        task = asyncio.create_task(
            pg_listen(self.db.pool, channel, on_notify, on_reconnect=self._reconnected),
            name=f"listen:{channel}",
        )
        return ListenerSubscription(channel, task)

    async def _reconnected(self) -> None:
        if self.on_reconnect is not None:
            await self.on_reconnect()

    async def check_health(self) -> bool:
        return await self.db.check_health()

    async def close(self) -> None:
        await self.db.disconnect()


async def connect_remote(
    settings: Settings, *, manager: DatabaseManager | None = None
) -> PostgresRemote | None:
    """Bounded initial connection check.

    Returns None, so the caller proceeds disconnected, when no database is
    configured, when the check exceeds ``session_timeout``, or on failure.
    """
    if not settings.is_remote_configured:
        logger.info("No DATABASE_URL configured, remote store disabled")
        return None

    manager = manager or DatabaseManager(
        settings.database_url, PoolConfig(ssl=settings.database_ssl or None)
    )
    try:
        await asyncio.wait_for(manager.connect(), timeout=settings.session_timeout)
    except TimeoutError:
        logger.warning(
            f"Database connection check timed out after {settings.session_timeout}s, "
            "continuing disconnected"
        )
        await manager.disconnect()
        return None
    except Exception as e:
        logger.warning(f"Database unavailable ({type(e).__name__}: {e}), continuing disconnected")
        await manager.disconnect()
        return None

    if settings.auto_migrate:
        try:
            await MigrationRunner(manager.pool).run_pending()
        except Exception as e:
            logger.error(f"Schema migration failed: {type(e).__name__}: {e}")

    return PostgresRemote(manager)
