"""Shared data models for the RummyQ backend."""

from .queue import Game, GameStatus, Player, sort_queue

__all__ = [
    "Game",
    "GameStatus",
    "Player",
    "sort_queue",
]
