"""Scheduler-triggered routes.

These endpoints are called by the scheduler (QStash), not by users directly.
They are protected by request signatures in production.
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from backend.api.deps import RescueServiceDep, verify_cron_request
from playlist_rescue.core.models import CollectionMode

logger = logging.getLogger(__name__)

router = APIRouter()


class RescueRunResponse(BaseModel):
    """Response from a rescue run."""

    status: str
    mode: CollectionMode
    collections_processed: int
    tracks_added: int
    failures: int


@router.post(
    "/rescue-playlists/{mode}",
    response_model=RescueRunResponse,
    dependencies=[Depends(verify_cron_request)],
)
async def rescue_playlists(mode: CollectionMode, rescue_service: RescueServiceDep) -> RescueRunResponse:
    """Top up every collecting collection of a cadence.

    Per-collection failures are logged and counted in ``failures``; they
    never fail the request.
    """
    logger.info(f"Rescue run requested: mode={mode.value}")
    result = await rescue_service.rescue_playlists(mode)

    return RescueRunResponse(
        status="ok",
        mode=mode,
        collections_processed=result.collections_processed,
        tracks_added=result.tracks_added,
        failures=result.failures,
    )
