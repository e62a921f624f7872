"""Active table API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from rummyq.core.dependencies import get_session
from rummyq.sync import SyncSession

from .queue_router import StateResponse, build_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tables", tags=["tables"])


class SwapRequest(BaseModel):
    leaving_ids: list[str] = Field(default_factory=list)


class SweepResponse(StateResponse):
    swept: int


@router.post("", response_model=StateResponse, status_code=201)
async def create_table(session: SyncSession = Depends(get_session)) -> StateResponse:
    """Seat the front of the queue at a new table."""
    game = await session.engine.create_table()
    if game is None:
        raise HTTPException(status_code=409, detail="Queue is empty")
    return build_state(session)


@router.delete("/{game_id}", response_model=StateResponse)
async def dissolve_table(game_id: str, session: SyncSession = Depends(get_session)) -> StateResponse:
    """Finish a table. Its players leave; they are not re-queued."""
    if not await session.engine.dissolve_table(game_id):
        raise HTTPException(status_code=404, detail="Table not found")
    return build_state(session)


@router.post("/{game_id}/swap", response_model=StateResponse)
async def swap_players(
    game_id: str, body: SwapRequest, session: SyncSession = Depends(get_session)
) -> StateResponse:
    """Remove the leaving players and refill their seats from the queue."""
    if session.store.find_game(game_id) is None:
        raise HTTPException(status_code=404, detail="Table not found")
    await session.engine.swap_players(game_id, body.leaving_ids)
    return build_state(session)


@router.post("/sweep", response_model=SweepResponse)
async def sweep_seated(session: SyncSession = Depends(get_session)) -> SweepResponse:
    """Drop queue entries for players who are already seated."""
    swept = await session.engine.sweep_seated()
    return SweepResponse(**build_state(session).model_dump(), swept=swept)
