"""API Routers package

Routers are organized by feature domain.
"""

from . import queue_router, sage_router, session_router, tables_router

__all__ = [
    "queue_router",
    "sage_router",
    "session_router",
    "tables_router",
]
