"""Storage contract consumed by the sync engine."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from shared.models.queue import Game, Player

from .events import ChangeEvent

ChangeHandler = Callable[[ChangeEvent], Awaitable[None] | None]


class Subscription(Protocol):
    def cancel(self) -> None: ...


class RemoteStore(Protocol):
    """Remote relational store with CRUD plus per-table change feeds.

    Implementations raise ``SetupRequiredError`` when the underlying tables
    are missing; any other exception is a transient failure.
    """

    async def list_queue(self, limit: int | None = None) -> list[Player]: ...

    async def list_games(self) -> list[Game]: ...

    async def insert_queue_row(self, player: Player) -> None: ...

    async def delete_queue_row(self, player_id: str) -> None: ...

    async def update_queue_row(self, player_id: str, fields: dict[str, Any]) -> None: ...

    async def delete_queue_rows(self, player_ids: list[str]) -> None: ...

    async def upsert_queue_rows(self, players: list[Player]) -> None: ...

    async def insert_game_row(self, game: Game) -> str: ...

    async def delete_game_row(self, game_id: str) -> None: ...

    async def update_game_row(self, game_id: str, fields: dict[str, Any]) -> None: ...

    def subscribe_queue_changes(self, handler: ChangeHandler) -> Subscription: ...

    def subscribe_game_changes(self, handler: ChangeHandler) -> Subscription: ...
