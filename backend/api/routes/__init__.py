"""API routes for Playlist Rescue."""

from fastapi import APIRouter

from backend.api.routes.cron import router as cron_router
from backend.api.routes.health import router as health_router

router = APIRouter()

router.include_router(health_router, tags=["health"])

# Scheduler routes - separate prefix outside /api
internal_api_router = cron_router
