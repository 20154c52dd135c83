"""Main application entry point with app factory and lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from scenario_scoring.api.app import create_api_app
from scenario_scoring.cache.client import close_valkey_client, get_valkey_client
from scenario_scoring.core.config import settings
from scenario_scoring.core.logging import get_logger, setup_logging
from scenario_scoring.database.connection import close_database, init_database
import scenario_scoring.jobs.definitions  # noqa: F401 - register jobs

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    setup_logging()
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Score cache version: {settings.score_cache_version}")

    await init_database()

    try:
        await get_valkey_client()
        logger.info("Valkey connection established")
    except Exception as e:
        logger.warning(f"Valkey connection failed (window cache disabled): {e}")

    yield

    logger.info("Shutting down...")
    await close_valkey_client()
    await close_database()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create the main FastAPI application with the API mounted under /api."""
    api_app = create_api_app()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.mount("/api", api_app)

    @app.get("/")
    async def root():
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/api/docs" if settings.debug else None,
            "health": "/api/health",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "scenario_scoring.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
