"""In-memory queue and games: the single copy the UI renders."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace

from shared.models.queue import Game, Player, sort_queue

logger = logging.getLogger(__name__)

StoreListener = Callable[["LocalStateStore"], None]

_PLAYER_FIELDS = ("name", "joined_at")
_GAME_FIELDS = ("players", "status")


class LocalStateStore:
    """Ordered queue plus games, mutated only by the engine and reconciler.

    The queue is always sorted by ``joined_at`` ascending. Games keep
    insertion order with the most recently created first. Every mutator is
    synchronous and notifies listeners once the invariant is restored.
    """

    def __init__(self) -> None:
        self._queue: list[Player] = []
        self._games: list[Game] = []
        self._listeners: list[StoreListener] = []

    # --- reads ---

    @property
    def queue(self) -> list[Player]:
        return list(self._queue)

    @property
    def games(self) -> list[Game]:
        return list(self._games)

    def find_player(self, player_id: str) -> Player | None:
        return next((p for p in self._queue if p.id == player_id), None)

    def find_game(self, game_id: str) -> Game | None:
        return next((g for g in self._games if g.id == game_id), None)

    def index_of(self, player_id: str) -> int:
        """Queue position of *player_id*, or -1."""
        return next((i for i, p in enumerate(self._queue) if p.id == player_id), -1)

    def seated_ids(self) -> set[str]:
        return {pid for game in self._games for pid in game.seated_ids()}

    # --- listeners ---

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StoreListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.warning(f"Store listener {listener!r} failed: {type(e).__name__}: {e}")

    # --- bulk ---

    def replace_queue(self, players: list[Player]) -> None:
        deduped: dict[str, Player] = {}
        for player in players:
            deduped.setdefault(player.id, player)
        self._queue = sort_queue(list(deduped.values()))
        self._changed()

    def replace_games(self, games: list[Game]) -> None:
        self._games = list(games)
        self._changed()

    def clear(self) -> None:
        self._queue = []
        self._games = []
        self._changed()

    # --- incremental: queue ---

    def insert_player(self, player: Player) -> bool:
        """Add *player* unless its id is already queued."""
        if self.find_player(player.id) is not None:
            return False
        self._queue = sort_queue([*self._queue, player])
        self._changed()
        return True

    def remove_player_by_id(self, player_id: str) -> bool:
        return self.remove_players_by_ids([player_id]) > 0

    def remove_players_by_ids(self, player_ids: list[str] | set[str]) -> int:
        ids = set(player_ids)
        kept = [p for p in self._queue if p.id not in ids]
        removed = len(self._queue) - len(kept)
        if removed:
            self._queue = kept
            self._changed()
        return removed

    def update_player_fields(self, player_id: str, **fields) -> bool:
        """Overwrite ``name`` and/or ``joined_at``; other keys are ignored."""
        changes = {k: v for k, v in fields.items() if k in _PLAYER_FIELDS}
        index = self.index_of(player_id)
        if index < 0 or not changes:
            return False
        updated = list(self._queue)
        updated[index] = replace(updated[index], **changes)
        self._queue = sort_queue(updated)
        self._changed()
        return True

    # --- incremental: games ---

    def insert_game(self, game: Game) -> bool:
        """Prepend *game* unless its id is already present."""
        if self.find_game(game.id) is not None:
            return False
        self._games = [game, *self._games]
        self._changed()
        return True

    def remove_game_by_id(self, game_id: str) -> bool:
        kept = [g for g in self._games if g.id != game_id]
        if len(kept) == len(self._games):
            return False
        self._games = kept
        self._changed()
        return True

    def update_game_fields(self, game_id: str, **fields) -> bool:
        """Overwrite ``players`` and/or ``status``; other keys are ignored."""
        changes = {k: v for k, v in fields.items() if k in _GAME_FIELDS}
        if "players" in changes:
            changes["players"] = list(changes["players"])
        updated = []
        found = False
        for game in self._games:
            if game.id == game_id and changes:
                game = replace(game, **changes)
                found = True
            updated.append(game)
        if not found:
            return False
        self._games = updated
        self._changed()
        return True
