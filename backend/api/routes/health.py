"""Health check endpoints."""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from backend.api.deps import FirestoreServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthCheckResponse(BaseModel):
    """Basic health check response."""

    status: str
    service: str


class DeepHealthCheckResponse(BaseModel):
    """Deep health check response with component status."""

    status: str
    service: str
    timestamp: str
    checks: dict[str, dict[str, Any]]


@router.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint for load balancers and monitoring."""
    return HealthCheckResponse(status="healthy", service="playlist-rescue")


@router.get("/health/deep", response_model=DeepHealthCheckResponse)
async def deep_health_check(firestore: FirestoreServiceDep) -> DeepHealthCheckResponse:
    """Deep health check that validates connectivity to Firestore.

    Counts collecting collections, which also proves the rescue run's main
    query can be served.
    """
    checks: dict[str, dict[str, Any]] = {}
    overall_healthy = True

    try:
        count = await firestore.count_documents("collections", filters=[("collecting", "==", True)])
        checks["firestore"] = {
            "status": "healthy",
            "message": f"Connected, {count} collecting collections",
        }
    except Exception as e:
        logger.error(f"Firestore health check failed: {e}")
        checks["firestore"] = {
            "status": "unhealthy",
            "error": str(e),
        }
        overall_healthy = False

    return DeepHealthCheckResponse(
        status="healthy" if overall_healthy else "degraded",
        service="playlist-rescue",
        timestamp=datetime.now(UTC).isoformat(),
        checks=checks,
    )
