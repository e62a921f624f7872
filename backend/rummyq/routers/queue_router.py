"""Waiting queue API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from rummyq.core.config import SyncMode
from rummyq.core.dependencies import get_session
from rummyq.sync import Direction, SyncSession
from shared.models import Game, Player

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["queue"])


# ============================================
# Response / Request Models
# ============================================


class PlayerResponse(BaseModel):
    id: str
    name: str
    avatar_seed: int
    joined_at: int
    position: int = 0

    @classmethod
    def from_player(cls, player: Player, position: int = 0) -> "PlayerResponse":
        return cls(**player.to_row(), position=position)


class GameResponse(BaseModel):
    id: str
    players: list[PlayerResponse]
    start_time: int
    status: str
    open_seats: int

    @classmethod
    def from_game(cls, game: Game, table_size: int) -> "GameResponse":
        return cls(
            id=game.id,
            players=[PlayerResponse.from_player(p) for p in game.players],
            start_time=game.start_time,
            status=game.status.value,
            open_seats=max(table_size - len(game.players), 0),
        )


class StateResponse(BaseModel):
    mode: SyncMode
    needs_setup: bool
    queue: list[PlayerResponse]
    next_up: list[PlayerResponse]
    games: list[GameResponse]
    table_size: int
    total_queued: int


class JoinRequest(BaseModel):
    name: str = Field(min_length=1, max_length=40)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class RenameRequest(JoinRequest):
    pass


class MoveRequest(BaseModel):
    direction: Direction


def build_state(session: SyncSession) -> StateResponse:
    table_size = session.config.table_size
    queue = [PlayerResponse.from_player(p, i + 1) for i, p in enumerate(session.store.queue)]
    return StateResponse(
        mode=session.mode,
        needs_setup=session.engine.needs_setup,
        queue=queue,
        next_up=queue[:table_size],
        games=[GameResponse.from_game(g, table_size) for g in session.store.games],
        table_size=table_size,
        total_queued=len(queue),
    )


# ============================================
# Queue Endpoints
# ============================================


@router.get("/state", response_model=StateResponse)
async def get_state(session: SyncSession = Depends(get_session)) -> StateResponse:
    """Current queue, tables and sync mode."""
    return build_state(session)


@router.post("/queue", response_model=StateResponse, status_code=201)
async def join_queue(
    body: JoinRequest, session: SyncSession = Depends(get_session)
) -> StateResponse:
    """Add a player to the end of the queue."""
    await session.engine.join_queue(body.name)
    return build_state(session)


@router.delete("/queue/{player_id}", response_model=StateResponse)
async def leave_queue(player_id: str, session: SyncSession = Depends(get_session)) -> StateResponse:
    """Remove a player from the queue."""
    if not await session.engine.leave_queue(player_id):
        raise HTTPException(status_code=404, detail="Player not in queue")
    return build_state(session)


@router.patch("/queue/{player_id}", response_model=StateResponse)
async def rename_player(
    player_id: str, body: RenameRequest, session: SyncSession = Depends(get_session)
) -> StateResponse:
    """Rename a queued player."""
    if not await session.engine.rename_player(player_id, body.name):
        raise HTTPException(status_code=404, detail="Player not in queue")
    return build_state(session)


@router.post("/queue/{player_id}/move", response_model=StateResponse)
async def move_player(
    player_id: str, body: MoveRequest, session: SyncSession = Depends(get_session)
) -> StateResponse:
    """Move a player one slot up or down. Moving past either end is a no-op."""
    if session.store.find_player(player_id) is None:
        raise HTTPException(status_code=404, detail="Player not in queue")
    await session.engine.reorder_player(player_id, body.direction)
    return build_state(session)
