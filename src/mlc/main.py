"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mlc.admin.router import router as admin_router
from mlc.auth.router import router as webhook_router
from mlc.config import get_settings
from mlc.content.router import admin_router as content_admin_router
from mlc.content.router import router as content_router
from mlc.database import close_db, get_session_factory, init_db
from mlc.gamification.catalog import seed_catalog
from mlc.gamification.router import router as gamification_router
from mlc.health.router import router as health_router
from mlc.lessons.router import router as lessons_router
from mlc.middleware import setup_middleware
from mlc.progress.router import router as progress_router
from mlc.redis_client import close_redis, init_redis
from mlc.users.router import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)

    # An empty URL runs without Redis: no pub/sub, no rate limiting, no email throttling
    if settings.redis_url:
        try:
            await init_redis(settings.redis_url)
        except Exception:
            logger.warning("Redis initialization failed, continuing without it", exc_info=True)

    # Seed achievements and default categories (idempotent)
    try:
        async with get_session_factory()() as db:
            await seed_catalog(db)
    except Exception:
        logger.warning("Catalog seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Microlearning Coach API",
        description="Backend API for Microlearning Coach: bite-sized lessons, streaks and achievements",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(webhook_router)
    app.include_router(users_router)
    app.include_router(lessons_router)
    app.include_router(progress_router)
    app.include_router(gamification_router)
    app.include_router(content_router)
    app.include_router(admin_router)
    app.include_router(content_admin_router)

    return app


app = create_app()
