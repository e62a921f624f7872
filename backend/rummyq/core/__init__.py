"""Core modules for the RummyQ host."""

from .config import (
    BACKEND_DIR,
    DATA_DIR,
    RUMMYQ_DIR,
    EngineConfig,
    Settings,
    SyncMode,
    get_settings,
)
from .logging import setup_logging
from .pg_listener import pg_listen

__all__ = [
    # Settings
    "EngineConfig",
    "Settings",
    "SyncMode",
    "get_settings",
    # Path Constants
    "BACKEND_DIR",
    "DATA_DIR",
    "RUMMYQ_DIR",
    # Setup functions
    "setup_logging",
    # PG Listener
    "pg_listen",
]
