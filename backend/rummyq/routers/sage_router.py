"""Rummy Sage API route."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from rummyq.core.dependencies import get_sage
from rummyq.services import RummySage

router = APIRouter(prefix="/api/sage", tags=["sage"])


class AskRequest(BaseModel):
    question: str = Field(min_length=1, max_length=500)


class AskResponse(BaseModel):
    answer: str


@router.post("", response_model=AskResponse)
async def ask(body: AskRequest, sage: RummySage = Depends(get_sage)) -> AskResponse:
    """Ask the Sage a rules or strategy question."""
    return AskResponse(answer=await sage.ask(body.question))
