"""FastAPI application factory"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rummyq import __version__
from rummyq.core.config import get_settings
from rummyq.core.logging import setup_logging
from rummyq.routers import queue_router, sage_router, session_router, tables_router
from rummyq.services import RummySage
from rummyq.sync import JsonFileSnapshotStore, PostgresRemote, SyncSession, connect_remote

logger = logging.getLogger(__name__)

_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time
    _start_time = time.time()
    settings = get_settings()

    logger.info("Starting RummyQ host")
    remote = None
    owns_session = getattr(app.state, "session", None) is None
    if owns_session:
        # Bounded: a slow or missing database never blocks startup
        remote = await connect_remote(settings)
        session = SyncSession(
            settings.engine_config(), remote, JsonFileSnapshotStore(settings.data_dir)
        )
        await session.start()
        app.state.session = session
    if getattr(app.state, "sage", None) is None:
        app.state.sage = RummySage(settings.openrouter_api_key, settings.openrouter_model)

    yield

    logger.info("Shutting down RummyQ host")
    if owns_session:
        try:
            await app.state.session.close()
            if remote is not None:
                await remote.close()
        except Exception as e:
            logger.exception(f"Error during shutdown: {e}")
        app.state.session = None


def create_app(session: SyncSession | None = None, sage: RummySage | None = None) -> FastAPI:
    """Create and configure FastAPI application"""
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="RummyQ",
        description="Live waiting queue and table management for card-game hosts",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.session = session
    app.state.sage = sage

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(queue_router.router)
    app.include_router(tables_router.router)
    app.include_router(session_router.router)
    app.include_router(sage_router.router)

    @app.get("/health")
    async def health():
        """Liveness check; probes the database only when one is connected"""
        current = getattr(app.state, "session", None)
        remote = current.remote if current else None
        return {
            "status": "healthy",
            "mode": current.mode.value if current else None,
            "subscribed": current.is_subscribed if current else False,
            "database": await remote.check_health() if isinstance(remote, PostgresRemote) else None,
            "uptime_seconds": int(time.time() - _start_time) if _start_time else 0,
        }

    return app
