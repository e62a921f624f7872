"""Shared repository layer for the RummyQ backend."""

from .queue import GameRepository, QueueRepository

__all__ = [
    "GameRepository",
    "QueueRepository",
]
