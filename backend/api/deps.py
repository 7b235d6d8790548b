"""Dependency injection for API routes."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from backend.config import BackendSettings, get_backend_settings
from backend.services.firestore_service import FirestoreService, get_firestore_service
from backend.services.rescue_service import RescueService, build_rescue_service
from backend.services.signature_service import SignatureService

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "Upstash-Signature"


async def get_settings() -> BackendSettings:
    """Get application settings."""
    return get_backend_settings()


async def get_firestore(
    settings: Annotated[BackendSettings, Depends(get_settings)],
) -> FirestoreService:
    """Get the Firestore service."""
    return get_firestore_service(settings)


async def get_rescue_service(
    settings: Annotated[BackendSettings, Depends(get_settings)],
    firestore: Annotated[FirestoreService, Depends(get_firestore)],
) -> RescueService:
    """Get a rescue service bound to this request's Firestore handle."""
    return build_rescue_service(settings, firestore)


async def verify_cron_request(
    request: Request,
    settings: Annotated[BackendSettings, Depends(get_settings)],
) -> None:
    """Reject cron requests without a valid scheduler signature.

    Outside production (unless ``require_signed_cron_requests`` is set) all
    requests are let through.

    Raises:
        HTTPException: 403 if the signature is missing or invalid.
    """
    if not settings.cron_signatures_required:
        return

    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        logger.warning("Cron request missing signature header")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized: missing request signature",
        )

    body = await request.body()
    if not SignatureService(settings).verify(signature, body):
        logger.warning("Cron request signature rejected")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized: invalid request signature",
        )


# Type aliases for cleaner route signatures
Settings = Annotated[BackendSettings, Depends(get_settings)]
FirestoreServiceDep = Annotated[FirestoreService, Depends(get_firestore)]
RescueServiceDep = Annotated[RescueService, Depends(get_rescue_service)]
