"""Data models for the queue and active_games tables."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class GameStatus(str, Enum):
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass
class Player:
    """Queue entrant.

    ``joined_at`` is the queue's ordering key (epoch milliseconds). Reordering
    rewrites it, so it is not an arrival audit timestamp.
    """

    id: str
    name: str
    avatar_seed: int
    joined_at: int

    @property
    def sort_key(self) -> tuple[int, str]:
        # id breaks joined_at collisions so the order stays total
        return (self.joined_at, self.id)

    def to_row(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: Any) -> Player:
        data = dict(row)
        return cls(
            id=str(data["id"]),
            name=data["name"],
            avatar_seed=int(data["avatar_seed"]),
            joined_at=int(data["joined_at"]),
        )


@dataclass
class Game:
    """Active table. ``players`` are embedded snapshots, not references."""

    id: str
    players: list[Player] = field(default_factory=list)
    start_time: int = 0
    status: GameStatus = GameStatus.ACTIVE

    def seated_ids(self) -> set[str]:
        return {p.id for p in self.players}

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "players": [p.to_row() for p in self.players],
            "start_time": self.start_time,
            "status": self.status.value,
        }

    @classmethod
    def from_row(cls, row: Any) -> Game:
        data = dict(row)
        players = data.get("players") or []
        # asyncpg hands jsonb back as text unless a codec is registered
        if isinstance(players, str):
            players = json.loads(players)
        return cls(
            id=str(data["id"]),
            players=[Player.from_row(p) for p in players],
            start_time=int(data["start_time"]),
            status=GameStatus(data.get("status") or GameStatus.ACTIVE.value),
        )


def sort_queue(players: list[Player]) -> list[Player]:
    """Return players ordered by ``joined_at`` ascending."""
    return sorted(players, key=lambda p: p.sort_key)
