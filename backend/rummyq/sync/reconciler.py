"""Merge remote change notifications into local state.

The merge functions are pure: ``(current collection, event) -> new collection``.
They are idempotent and tolerate any arrival order, so echoes of this
client's own optimistic writes fall out as no-ops:

- insert of a known id: ignored
- update or delete of an unknown id: ignored
- update of a known id: overwrite the mutable fields only
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from shared.models.queue import Game, GameStatus, Player, sort_queue

from .events import ChangeEvent, ChangeKind, EntityKind
from .store import LocalStateStore

logger = logging.getLogger(__name__)


def merge_queue_change(queue: list[Player], event: ChangeEvent) -> list[Player]:
    player_id = event.row_id
    if player_id is None:
        logger.warning(f"Dropping queue {event.kind.value} without id: {event.row}")
        return list(queue)
    known = any(p.id == player_id for p in queue)

    if event.kind is ChangeKind.INSERT:
        if known:
            return list(queue)
        try:
            player = Player.from_row(event.row)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Dropping malformed queue insert {player_id}: {e}")
            return list(queue)
        return sort_queue([*queue, player])

    if event.kind is ChangeKind.DELETE:
        return [p for p in queue if p.id != player_id]

    # UPDATE: the row may already have been seated or removed
    if not known:
        return list(queue)
    current = next(p for p in queue if p.id == player_id)
    try:
        name = event.row.get("name", current.name)
        joined_at = int(event.row.get("joined_at", current.joined_at))
        if not isinstance(name, str):
            raise TypeError(f"name is {type(name).__name__}")
    except (TypeError, ValueError) as e:
        logger.warning(f"Dropping malformed queue update {player_id}: {e}")
        return list(queue)
    updated = Player(current.id, name, current.avatar_seed, joined_at)
    return sort_queue([updated if p.id == player_id else p for p in queue])


def merge_game_change(games: list[Game], event: ChangeEvent) -> list[Game]:
    game_id = event.row_id
    if game_id is None:
        logger.warning(f"Dropping game {event.kind.value} without id: {event.row}")
        return list(games)
    known = any(g.id == game_id for g in games)

    if event.kind is ChangeKind.INSERT:
        if known:
            return list(games)
        try:
            game = Game.from_row(event.row)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Dropping malformed game insert {game_id}: {e}")
            return list(games)
        return [game, *games]

    if event.kind is ChangeKind.DELETE:
        return [g for g in games if g.id != game_id]

    if not known:
        return list(games)
    current = next(g for g in games if g.id == game_id)
    try:
        incoming = Game.from_row({"start_time": 0, **event.row})
        status = GameStatus(event.row.get("status", current.status))
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Dropping malformed game update {game_id}: {e}")
        return list(games)
    merged: list[Game] = []
    for g in games:
        if g.id == game_id:
            g = Game(
                id=g.id,
                players=incoming.players if "players" in event.row else g.players,
                start_time=g.start_time,
                status=status,
            )
        merged.append(g)
    return merged


class ChangeReconciler:
    """Applies change events to a LocalStateStore.

    While held (see ``held()``) events are buffered instead of applied, then
    replayed in arrival order on release. A resync holds the reconciler
    across its remote reads so events that arrive mid-read are applied on
    top of the fresh state rather than overwritten by it.
    """

    def __init__(self, store: LocalStateStore) -> None:
        self.store = store
        self._holds = 0
        self._buffer: list[ChangeEvent] = []

    @property
    def is_held(self) -> bool:
        return self._holds > 0

    @contextmanager
    def held(self) -> Iterator[None]:
        self._holds += 1
        try:
            yield
        finally:
            self._holds -= 1
            if not self._holds:
                self._replay()

    def discard_buffered(self) -> int:
        """Drop held events, e.g. when the feeds they came from are cancelled."""
        dropped, self._buffer = len(self._buffer), []
        return dropped

    def _replay(self) -> None:
        buffered, self._buffer = self._buffer, []
        if buffered:
            logger.debug(f"Replaying {len(buffered)} change(s) buffered during resync")
        for event in buffered:
            self.apply(event)

    def apply(self, event: ChangeEvent) -> bool:
        """Merge *event* into the store. Returns True if state changed."""
        if self.is_held:
            self._buffer.append(event)
            return False
        if event.entity is EntityKind.PLAYER:
            current = self.store.queue
            merged = merge_queue_change(current, event)
            if merged == current:
                return False
            self.store.replace_queue(merged)
        else:
            current_games = self.store.games
            merged_games = merge_game_change(current_games, event)
            if merged_games == current_games:
                return False
            self.store.replace_games(merged_games)
        logger.debug(f"Applied remote {event.entity.value} {event.kind.value} {event.row_id}")
        return True

    async def handle_queue_change(self, event: ChangeEvent) -> None:
        self.apply(event)

    async def handle_game_change(self, event: ChangeEvent) -> None:
        self.apply(event)
