"""Dependency injection utilities for FastAPI"""

from fastapi import HTTPException, Request

from rummyq.services import RummySage
from rummyq.sync import SyncSession


def get_session(request: Request) -> SyncSession:
    """Get the process-wide SyncSession created in the lifespan"""
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Sync session not started")
    return session


def get_sage(request: Request) -> RummySage:
    """Get the shared RummySage client"""
    sage = getattr(request.app.state, "sage", None)
    if sage is None:
        raise HTTPException(status_code=503, detail="Sage not configured")
    return sage
