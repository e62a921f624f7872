"""Sync mode and setup API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from rummyq.core.config import SyncMode
from rummyq.core.dependencies import get_session
from rummyq.sync import RemoteUnavailableError, SyncSession
from shared.migrations import read_schema

from .queue_router import StateResponse, build_state

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])


class ModeRequest(BaseModel):
    mode: SyncMode


@router.post("/mode", response_model=StateResponse)
async def set_mode(body: ModeRequest, session: SyncSession = Depends(get_session)) -> StateResponse:
    """Switch between connected and local-only mode."""
    try:
        await session.set_mode(body.mode)
    except RemoteUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e)) from None
    logger.info(f"Sync mode switched to {body.mode.value}")
    return build_state(session)


@router.post("/resync", response_model=StateResponse)
async def resync(session: SyncSession = Depends(get_session)) -> StateResponse:
    """Re-read the remote store, e.g. after applying the schema."""
    if session.mode is not SyncMode.CONNECTED:
        raise HTTPException(status_code=409, detail="Not in connected mode")
    await session.resync()
    return build_state(session)


@router.get("/setup", response_class=PlainTextResponse)
async def setup_sql() -> str:
    """SQL to create the queue and active_games tables and change triggers."""
    return read_schema()
