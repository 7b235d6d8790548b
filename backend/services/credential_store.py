"""Persistence for connected Spotify accounts' OAuth credentials."""

import logging
from datetime import UTC, datetime
from typing import Any

from backend.services.firestore_service import FirestoreService
from playlist_rescue.core.models import CredentialSet

logger = logging.getLogger(__name__)


class CredentialStore:
    """Reads and writes per-account token sets.

    Documents live in ``accounts/{owner_id}``.
    """

    ACCOUNTS_COLLECTION = "accounts"

    def __init__(self, firestore: FirestoreService):
        self.firestore = firestore

    async def get_credentials(self, owner_id: str) -> CredentialSet | None:
        """Get an owner's credentials.

        Returns:
            CredentialSet, or None if the account is unknown or has no usable tokens.
        """
        doc = await self.firestore.get_document(self.ACCOUNTS_COLLECTION, owner_id)
        if doc is None:
            return None
        return self.doc_to_credentials(owner_id, doc)

    async def update_credentials(self, credentials: CredentialSet) -> None:
        """Persist a refreshed token set.

        Access token, refresh token and expiry go out in a single update so a
        reader never pairs a new access token with a stale expiry.
        """
        await self.firestore.update_document(
            self.ACCOUNTS_COLLECTION,
            credentials.owner_id,
            {
                "access_token": credentials.access_token,
                "refresh_token": credentials.refresh_token,
                "expires_at": credentials.expires_at,
                "updated_at": datetime.now(UTC).isoformat(),
            },
        )

    @staticmethod
    def doc_to_credentials(owner_id: str, doc: dict[str, Any]) -> CredentialSet | None:
        """Convert an account document to a CredentialSet.

        Accounts missing a token or expiry (e.g. a half-finished sign-in) have
        no usable credentials.
        """
        access_token = doc.get("access_token")
        refresh_token = doc.get("refresh_token")
        expires_at = doc.get("expires_at")
        if not access_token or not refresh_token or expires_at is None:
            logger.warning(f"Account has incomplete credentials: owner_id={owner_id}")
            return None

        return CredentialSet(
            owner_id=owner_id,
            provider_account_id=doc.get("provider_account_id", ""),
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=int(expires_at),
        )
