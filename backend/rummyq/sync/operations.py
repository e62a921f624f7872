"""Host-initiated mutations with optimistic local semantics.

Every operation updates the LocalStateStore synchronously, before its first
suspension point, then issues the matching remote write when connected.
Remote failures are logged and swallowed: local state is never rolled back
and nothing is retried. A missing remote schema flips ``needs_setup``.
"""

from __future__ import annotations

import logging
import random
import time
import uuid
from collections.abc import Awaitable, Callable
from enum import Enum

from rummyq.core.config import EngineConfig
from shared.models.queue import Game, GameStatus, Player

from .errors import SetupRequiredError
from .storage import RemoteStore
from .store import LocalStateStore

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


def now_ms() -> int:
    return int(time.time() * 1000)


class QueueEngine:
    """Join / leave / rename / reorder / promote / dissolve / swap."""

    def __init__(
        self,
        store: LocalStateStore,
        config: EngineConfig,
        remote: RemoteStore | None = None,
        *,
        clock: Callable[[], int] = now_ms,
        rng: random.Random | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.remote = remote
        self.needs_setup = False
        self._clock = clock
        self._rng = rng or random.Random()
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    @property
    def is_connected(self) -> bool:
        return not self.config.is_local and self.remote is not None

    # ------------------------------------------------------------------
    # Remote boundary
    # ------------------------------------------------------------------

    def _flag_setup(self, error: SetupRequiredError) -> None:
        if not self.needs_setup:
            logger.error(f"{error}; apply the schema and resync")
        self.needs_setup = True

    async def _remote_write(self, label: str, call: Callable[[], Awaitable[object]]) -> bool:
        """Run one remote write. Returns False if it failed."""
        if not self.is_connected:
            return True
        try:
            await call()
            return True
        except SetupRequiredError as e:
            self._flag_setup(e)
            return False
        except Exception as e:
            logger.warning(f"Remote {label} failed, keeping local state: {type(e).__name__}: {e}")
            return False

    async def resync(self) -> bool:
        """Replace local state with a full read of the remote store."""
        if not self.is_connected:
            return False
        try:
            queue = await self.remote.list_queue()
            games = await self.remote.list_games()
        except SetupRequiredError as e:
            self._flag_setup(e)
            return False
        except Exception as e:
            logger.warning(f"Resync failed: {type(e).__name__}: {e}")
            return False
        self.needs_setup = False
        self.store.replace_queue(queue)
        self.store.replace_games(games)
        logger.info(f"Resynced: {len(queue)} queued, {len(games)} tables")
        return True

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def _next_joined_at(self) -> int:
        # Strictly after the current tail so local joins never collide
        now = self._clock()
        queue = self.store.queue
        if queue and queue[-1].joined_at >= now:
            return queue[-1].joined_at + 1
        return now

    async def join_queue(self, name: str) -> Player | None:
        name = name.strip()
        if not name:
            return None
        player = Player(
            id=self._new_id(),
            name=name,
            avatar_seed=self._rng.randrange(self.config.avatar_seed_range),
            joined_at=self._next_joined_at(),
        )
        self.store.insert_player(player)
        logger.info(f"{player.name} joined the queue ({player.id})")
        await self._remote_write("queue insert", lambda: self.remote.insert_queue_row(player))
        return player

    async def leave_queue(self, player_id: str) -> bool:
        if not self.store.remove_player_by_id(player_id):
            return False
        await self._remote_write("queue delete", lambda: self.remote.delete_queue_row(player_id))
        return True

    async def rename_player(self, player_id: str, new_name: str) -> bool:
        new_name = new_name.strip()
        if not new_name:
            return False
        if not self.store.update_player_fields(player_id, name=new_name):
            return False
        await self._remote_write(
            "queue rename",
            lambda: self.remote.update_queue_row(player_id, {"name": new_name}),
        )
        return True

    async def reorder_player(self, player_id: str, direction: Direction | str) -> bool:
        """Move a player one slot by exchanging ``joined_at`` with the neighbour."""
        direction = Direction(direction)
        queue = self.store.queue
        index = self.store.index_of(player_id)
        if index < 0:
            return False
        target = index - 1 if direction is Direction.UP else index + 1
        if target < 0 or target >= len(queue):
            return False

        mover, neighbour = queue[index], queue[target]
        if mover.joined_at == neighbour.joined_at:
            # Equal keys cannot be reordered by exchanging them
            logger.debug(f"joined_at collision between {mover.id} and {neighbour.id}")
            return False

        moved = Player(mover.id, mover.name, mover.avatar_seed, neighbour.joined_at)
        displaced = Player(neighbour.id, neighbour.name, neighbour.avatar_seed, mover.joined_at)
        queue[index], queue[target] = moved, displaced
        self.store.replace_queue(queue)

        await self._remote_write(
            "queue reorder", lambda: self.remote.upsert_queue_rows([moved, displaced])
        )
        return True

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def create_table(self) -> Game | None:
        """Seat the first ``table_size`` queued players at a new table."""
        queue = self.store.queue
        count = min(len(queue), self.config.table_size)
        if count == 0:
            return None

        seated = queue[:count]
        seated_ids = [p.id for p in seated]
        game = Game(
            id=self._new_id(),
            players=seated,
            start_time=self._clock(),
            status=GameStatus.ACTIVE,
        )
        self.store.insert_game(game)
        self.store.remove_players_by_ids(seated_ids)
        logger.info(f"Table {game.id} started with {', '.join(p.name for p in seated)}")

        # Two steps: the queue rows are only removed once the game exists
        if await self._remote_write("game insert", lambda: self.remote.insert_game_row(game)):
            await self._remote_write(
                "queue batch delete", lambda: self.remote.delete_queue_rows(seated_ids)
            )
        return game

    async def dissolve_table(self, game_id: str) -> bool:
        """Finish a table. Its players do not return to the queue."""
        if not self.store.remove_game_by_id(game_id):
            return False
        logger.info(f"Table {game_id} finished")
        await self._remote_write("game delete", lambda: self.remote.delete_game_row(game_id))
        return True

    async def _draw_candidates(self, slots: int) -> list[Player] | None:
        """Front of the queue. Connected mode reads it fresh from the remote."""
        if not self.is_connected:
            return self.store.queue[:slots]
        try:
            return await self.remote.list_queue(limit=slots)
        except SetupRequiredError as e:
            self._flag_setup(e)
        except Exception as e:
            logger.warning(f"Queue read for swap failed: {type(e).__name__}: {e}")
        return None

    async def swap_players(self, game_id: str, leaving_ids: list[str]) -> Game | None:
        """Remove *leaving_ids* from a table and refill empty seats from the queue.

        An empty *leaving_ids* just tops up a short table. Returns the updated
        game, or None when nothing changed.
        """
        game = self.store.find_game(game_id)
        if game is None:
            return None
        leaving = set(leaving_ids)
        kept = [p for p in game.players if p.id not in leaving]
        slots = self.config.table_size - len(kept)
        if slots <= 0:
            if len(kept) == len(game.players):
                return None
            self.store.update_game_fields(game_id, players=kept)
            await self._remote_write(
                "game update", lambda: self.remote.update_game_row(game_id, {"players": kept})
            )
            return self.store.find_game(game_id)

        candidates = await self._draw_candidates(slots)
        if candidates is None:
            return None

        # The table may have changed while the read was in flight
        game = self.store.find_game(game_id)
        if game is None:
            logger.info(f"Table {game_id} was dissolved during swap")
            return None
        kept = [p for p in game.players if p.id not in leaving]
        kept_ids = {p.id for p in kept}
        slots = self.config.table_size - len(kept)
        drawn = [p for p in candidates if p.id not in kept_ids][: max(slots, 0)]
        if not drawn and len(kept) == len(game.players):
            return None
        drawn_ids = [p.id for p in drawn]
        updated = kept + drawn

        self.store.update_game_fields(game_id, players=updated)
        self.store.remove_players_by_ids(drawn_ids)
        logger.info(
            f"Table {game_id}: {len(game.players) - len(kept)} left, seated {', '.join(p.name for p in drawn) or 'nobody'}"
        )

        if (
            await self._remote_write(
                "game update", lambda: self.remote.update_game_row(game_id, {"players": updated})
            )
            and drawn_ids
        ):
            await self._remote_write(
                "queue batch delete", lambda: self.remote.delete_queue_rows(drawn_ids)
            )
        return self.store.find_game(game_id)

    async def sweep_seated(self) -> int:
        """Drop queue entries whose player is already seated at a table.

        Cleans up after a composite write whose queue-row delete failed.
        """
        seated = self.store.seated_ids()
        orphan_ids = [p.id for p in self.store.queue if p.id in seated]
        if not orphan_ids:
            return 0
        self.store.remove_players_by_ids(orphan_ids)
        logger.info(f"Swept {len(orphan_ids)} seated player(s) from the queue")
        await self._remote_write(
            "queue sweep", lambda: self.remote.delete_queue_rows(orphan_ids)
        )
        return len(orphan_ids)
