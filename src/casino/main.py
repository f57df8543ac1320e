"""FastAPI application factory."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from casino.achievements.router import router as achievements_router
from casino.config import get_settings
from casino.database import close_db, get_engine, init_db
from casino.db.schema import ensure_schema
from casino.economy.router import router as chips_router
from casino.health.router import router as health_router
from casino.middleware import setup_middleware
from casino.missions.router import router as missions_router
from casino.redis_client import close_redis, get_redis_or_none, init_redis
from casino.stats.router import router as stats_router
from casino.ws.bridge import AchievementBridge
from casino.ws.router import router as ws_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, max_connections=settings.redis_max_connections)

    app.state.schema_ready = await ensure_schema(get_engine())
    if not app.state.schema_ready:
        logger.warning("Starting with an incomplete schema; /ready will report degraded")

    # Achievement announcements -> toast queues of connected players
    bridge = AchievementBridge(get_redis_or_none())  # type: ignore[arg-type]
    bridge_task = asyncio.create_task(bridge.start())

    yield

    await bridge.stop()
    bridge_task.cancel()
    try:
        await bridge_task
    except asyncio.CancelledError:
        pass

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Casino API",
        description="Chip ledger, daily missions and achievements for the casino games",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.schema_ready = False

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(chips_router)
    app.include_router(missions_router)
    app.include_router(achievements_router)
    app.include_router(stats_router)
    app.include_router(ws_router)

    return app


app = create_app()
