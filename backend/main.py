"""FastAPI application for Playlist Rescue."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.api.routes import internal_api_router, router
from backend.config import get_backend_settings

# Configure logging to output to stdout for Cloud Run
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stdout,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_backend_settings()
    logger.info(f"Starting Playlist Rescue API ({settings.environment})")

    yield

    logger.info("Shutting down Playlist Rescue API")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_backend_settings()

    app = FastAPI(
        title="Playlist Rescue API",
        description="Keep a personal, ever-growing copy of the Spotify playlists you follow",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs" if not settings.is_production else None,
        redoc_url="/api/redoc" if not settings.is_production else None,
    )

    app.include_router(router, prefix="/api")

    # Scheduler callbacks
    app.include_router(internal_api_router, prefix="/internal", tags=["internal"])

    return app


app = create_app()
