"""Repository for the queue and active_games tables."""

from __future__ import annotations

import json
import logging
from typing import Any

import asyncpg

from shared.models.queue import Game, Player

logger = logging.getLogger(__name__)

_QUEUE_COLUMNS = "id::text AS id, name, avatar_seed, joined_at"

_GAME_COLUMNS = "id::text AS id, players, start_time, status"

# Column whitelists for partial updates
_QUEUE_UPDATABLE = ("name", "joined_at")
_GAME_UPDATABLE = ("players", "status")


def _set_clause(fields: dict[str, Any], allowed: tuple[str, ...], start: int) -> tuple[str, list]:
    """Build ``col = $n`` assignments for the whitelisted keys of *fields*."""
    parts: list[str] = []
    values: list[Any] = []
    for column in allowed:
        if column not in fields:
            continue
        values.append(fields[column])
        cast = "::jsonb" if column == "players" else ""
        parts.append(f"{column} = ${start + len(values) - 1}{cast}")
    return ", ".join(parts), values


class QueueRepository:
    """Pure SQL operations for queue rows."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def list_rows(self, limit: int | None = None) -> list[Player]:
        """Queue rows ordered by joined_at ASC, optionally capped at *limit*."""
        async with self.pool.acquire() as conn:
            if limit is None:
                rows = await conn.fetch(
                    f"SELECT {_QUEUE_COLUMNS} FROM queue ORDER BY joined_at ASC, id ASC"
                )
            else:
                rows = await conn.fetch(
                    f"SELECT {_QUEUE_COLUMNS} FROM queue ORDER BY joined_at ASC, id ASC LIMIT $1",
                    limit,
                )
            return [Player.from_row(row) for row in rows]

    async def insert_row(self, player: Player) -> Player:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO queue (id, name, avatar_seed, joined_at)
                VALUES ($1::uuid, $2, $3, $4)
                RETURNING {_QUEUE_COLUMNS}
                """,
                player.id,
                player.name,
                player.avatar_seed,
                player.joined_at,
            )
            return Player.from_row(row)

    async def delete_row(self, player_id: str) -> bool:
        """Delete one row. Returns True if a row was removed."""
        async with self.pool.acquire() as conn:
            result = await conn.execute("DELETE FROM queue WHERE id = $1::uuid", player_id)
            return result == "DELETE 1"

    async def delete_rows(self, player_ids: list[str]) -> int:
        """Delete a batch of rows. Returns count of deleted rows."""
        if not player_ids:
            return 0
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM queue WHERE id = ANY($1::uuid[])",
                player_ids,
            )
            # result is like "DELETE N"
            return int(result.split()[-1])

    async def update_row(self, player_id: str, fields: dict[str, Any]) -> bool:
        """Update name and/or joined_at. Unknown keys are ignored."""
        assignments, values = _set_clause(fields, _QUEUE_UPDATABLE, start=2)
        if not assignments:
            return False
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                f"UPDATE queue SET {assignments} WHERE id = $1::uuid",
                player_id,
                *values,
            )
            return result == "UPDATE 1"

    async def upsert_rows(self, players: list[Player]) -> None:
        """Insert-or-update a batch of rows in one transaction."""
        if not players:
            return
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(
                    """
                    INSERT INTO queue (id, name, avatar_seed, joined_at)
                    VALUES ($1::uuid, $2, $3, $4)
                    ON CONFLICT (id) DO UPDATE SET
                        name = EXCLUDED.name,
                        avatar_seed = EXCLUDED.avatar_seed,
                        joined_at = EXCLUDED.joined_at
                    """,
                    [(p.id, p.name, p.avatar_seed, p.joined_at) for p in players],
                )


class GameRepository:
    """Pure SQL operations for active_games rows."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def list_rows(self) -> list[Game]:
        """All games, most recently started first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_GAME_COLUMNS} FROM active_games ORDER BY start_time DESC"
            )
            return [Game.from_row(row) for row in rows]

    async def insert_row(self, game: Game) -> str:
        """Insert a game and return its id."""
        row = game.to_row()
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                """
                INSERT INTO active_games (id, players, start_time, status)
                VALUES ($1::uuid, $2::jsonb, $3, $4)
                RETURNING id::text
                """,
                row["id"],
                json.dumps(row["players"]),
                row["start_time"],
                row["status"],
            )

    async def delete_row(self, game_id: str) -> bool:
        async with self.pool.acquire() as conn:
            result = await conn.execute("DELETE FROM active_games WHERE id = $1::uuid", game_id)
            return result == "DELETE 1"

    async def update_row(self, game_id: str, fields: dict[str, Any]) -> bool:
        """Update players and/or status. Unknown keys are ignored."""
        encoded = dict(fields)
        if "players" in encoded:
            encoded["players"] = json.dumps(
                [p.to_row() if isinstance(p, Player) else p for p in encoded["players"]]
            )
        if "status" in encoded:
            encoded["status"] = getattr(encoded["status"], "value", encoded["status"])
        assignments, values = _set_clause(encoded, _GAME_UPDATABLE, start=2)
        if not assignments:
            return False
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                f"UPDATE active_games SET {assignments} WHERE id = $1::uuid",
                game_id,
                *values,
            )
            return result == "UPDATE 1"
