"""Shared test fixtures for the RummyQ sync engine."""

import inspect
import itertools
from dataclasses import replace

import pytest

from rummyq.core.config import EngineConfig, SyncMode
from rummyq.sync import ChangeEvent, ChangeKind, EntityKind, SetupRequiredError
from rummyq.sync.operations import QueueEngine
from rummyq.sync.store import LocalStateStore
from shared.models import Game, Player, sort_queue


class FakeSubscription:
    def __init__(self, handlers: list, handler) -> None:
        self._handlers = handlers
        self._handler = handler
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True
        if self._handler in self._handlers:
            self._handlers.remove(self._handler)


class FakeRemote:
    """In-memory RemoteStore.

    Writes are recorded in ``calls`` and queue a change event per touched
    row; ``flush()`` delivers the queued events to subscribers, which is how
    tests simulate the echo of a write arriving later.
    """

    def __init__(self) -> None:
        self.queue: dict[str, Player] = {}
        self.games: dict[str, Game] = {}
        self.calls: list[str] = []
        self.fail: set[str] = set()
        self.missing_tables = False
        self.pending: list[ChangeEvent] = []
        self.queue_handlers: list = []
        self.game_handlers: list = []

    def _check(self, op: str) -> None:
        self.calls.append(op)
        if self.missing_tables:
            raise SetupRequiredError("queue")
        if op in self.fail:
            raise ConnectionError(f"{op} failed")

    def _emit(self, kind: ChangeKind, entity: EntityKind, row: dict) -> None:
        self.pending.append(ChangeEvent(kind=kind, entity=entity, row=row))

    def seed(self, *players: Player) -> None:
        for player in players:
            self.queue[player.id] = player

    async def flush(self) -> int:
        delivered = 0
        while self.pending:
            event = self.pending.pop(0)
            handlers = self.queue_handlers if event.entity is EntityKind.PLAYER else self.game_handlers
            for handler in list(handlers):
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            delivered += 1
        return delivered

    # --- reads ---

    async def list_queue(self, limit=None):
        self._check("list_queue")
        rows = sort_queue(list(self.queue.values()))
        return rows if limit is None else rows[:limit]

    async def list_games(self):
        self._check("list_games")
        return sorted(self.games.values(), key=lambda g: g.start_time, reverse=True)

    # --- queue writes ---

    async def insert_queue_row(self, player):
        self._check("insert_queue_row")
        self.queue[player.id] = player
        self._emit(ChangeKind.INSERT, EntityKind.PLAYER, player.to_row())

    async def delete_queue_row(self, player_id):
        self._check("delete_queue_row")
        if self.queue.pop(player_id, None) is not None:
            self._emit(ChangeKind.DELETE, EntityKind.PLAYER, {"id": player_id})

    async def update_queue_row(self, player_id, fields):
        self._check("update_queue_row")
        if player_id in self.queue:
            self.queue[player_id] = replace(self.queue[player_id], **fields)
            self._emit(ChangeKind.UPDATE, EntityKind.PLAYER, self.queue[player_id].to_row())

    async def delete_queue_rows(self, player_ids):
        self._check("delete_queue_rows")
        for player_id in player_ids:
            if self.queue.pop(player_id, None) is not None:
                self._emit(ChangeKind.DELETE, EntityKind.PLAYER, {"id": player_id})

    async def upsert_queue_rows(self, players):
        self._check("upsert_queue_rows")
        for player in players:
            kind = ChangeKind.UPDATE if player.id in self.queue else ChangeKind.INSERT
            self.queue[player.id] = player
            self._emit(kind, EntityKind.PLAYER, player.to_row())

    # --- game writes ---

    async def insert_game_row(self, game):
        self._check("insert_game_row")
        self.games[game.id] = game
        self._emit(ChangeKind.INSERT, EntityKind.GAME, game.to_row())
        return game.id

    async def delete_game_row(self, game_id):
        self._check("delete_game_row")
        if self.games.pop(game_id, None) is not None:
            self._emit(ChangeKind.DELETE, EntityKind.GAME, {"id": game_id})

    async def update_game_row(self, game_id, fields):
        self._check("update_game_row")
        if game_id in self.games:
            self.games[game_id] = replace(self.games[game_id], **fields)
            self._emit(ChangeKind.UPDATE, EntityKind.GAME, self.games[game_id].to_row())

    # --- change feeds ---

    def subscribe_queue_changes(self, handler):
        self.queue_handlers.append(handler)
        return FakeSubscription(self.queue_handlers, handler)

    def subscribe_game_changes(self, handler):
        self.game_handlers.append(handler)
        return FakeSubscription(self.game_handlers, handler)


class MemorySnapshotStore:
    def __init__(self) -> None:
        self.blobs: dict[str, str] = {}

    def get(self, key):
        return self.blobs.get(key)

    def set(self, key, blob):
        self.blobs[key] = blob


def make_player(name: str, joined_at: int, seed: int = 7) -> Player:
    return Player(id=f"p-{name.lower()}", name=name, avatar_seed=seed, joined_at=joined_at)


def engine_options() -> dict:
    """Deterministic clock (1, 2, 3, ...) and ids (id-1, id-2, ...)."""
    clock = itertools.count(1)
    ids = itertools.count(1)
    return {
        "clock": lambda: next(clock),
        "id_factory": lambda: f"id-{next(ids)}",
    }


def names(players) -> list[str]:
    return [p.name for p in players]


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def snapshots():
    return MemorySnapshotStore()


@pytest.fixture
def local_engine():
    return QueueEngine(
        LocalStateStore(), EngineConfig(mode=SyncMode.LOCAL_ONLY), **engine_options()
    )


@pytest.fixture
def connected_engine(remote):
    return QueueEngine(
        LocalStateStore(), EngineConfig(mode=SyncMode.CONNECTED), remote, **engine_options()
    )
