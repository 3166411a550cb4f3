"""FastAPI application factory."""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from vehicle_timeline.api.v1.router import api_router
from vehicle_timeline.config import settings
from vehicle_timeline.core.database.migration_check import require_migrations
from vehicle_timeline.core.database.session import engine, get_db
from vehicle_timeline.core.logging import LoggingMiddleware, get_logger, setup_logging

VERSION = "0.1.0"

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging(settings)
    logger.info("application_starting", app_name=settings.app_name, environment=settings.app_env)

    # Refuse to serve timelines from a schema the models do not match
    await require_migrations(engine, fail_on_outdated=settings.require_migrations_on_startup)

    app.state.started_at = time.monotonic()
    logger.info(
        "application_started",
        timeline_timeout_seconds=settings.timeline_timeout_seconds,
        timeline_max_page_size=settings.timeline_max_page_size,
    )

    yield

    await engine.dispose()
    logger.info("application_stopped", app_name=settings.app_name)


async def ping_database(db: AsyncSession) -> dict:
    started = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("database_ping_failed", error=str(e))
        return {"status": "error", "latency_ms": None}
    return {"status": "connected", "latency_ms": round((time.perf_counter() - started) * 1000, 2)}


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=VERSION,
        description="Unified, read-only activity timeline for fleet vehicles",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(LoggingMiddleware)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check(db: Annotated[AsyncSession, Depends(get_db)]) -> dict:
        """Health check endpoint.

        "degraded" when the database ping fails; the timeline cannot be built
        without it.
        """
        database = await ping_database(db)
        started_at = getattr(app.state, "started_at", None)

        return {
            "status": "healthy" if database["status"] == "connected" else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(time.monotonic() - started_at, 2) if started_at else None,
            "version": VERSION,
            "environment": settings.app_env,
            "database": database,
        }

    return app


app = create_app()
