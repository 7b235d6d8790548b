"""Keeps Spotify access tokens valid."""

import logging
import time
from collections.abc import Callable

from backend.services.credential_store import CredentialStore
from playlist_rescue.core.exceptions import CredentialRefreshFailed, TransportError
from playlist_rescue.core.models import CredentialSet
from playlist_rescue.services.spotify import SpotifyClient

logger = logging.getLogger(__name__)


class TokenRefresher:
    """Refreshes an account's tokens when, and only when, they have expired."""

    def __init__(
        self,
        store: CredentialStore,
        spotify: SpotifyClient,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the token refresher.

        Args:
            store: Where refreshed credentials are persisted.
            spotify: Client used to call the token endpoint.
            clock: Returns the current epoch time in seconds.
        """
        self.store = store
        self.spotify = spotify
        self.clock = clock

    async def ensure_valid(self, credentials: CredentialSet) -> CredentialSet:
        """Return credentials whose access token has not expired.

        Unexpired credentials come back unchanged without touching the
        network or the store. Expired ones are refreshed and persisted.

        Raises:
            CredentialRefreshFailed: If the refresh or the write-back fails.
        """
        now = int(self.clock())
        if not credentials.is_expired(now):
            return credentials

        owner_id = credentials.owner_id
        logger.info(f"Refreshing Spotify token: owner_id={owner_id}, expired_at={credentials.expires_at}")

        if not credentials.refresh_token:
            raise CredentialRefreshFailed(owner_id, "No refresh token available")

        try:
            tokens = await self.spotify.refresh_access_token(credentials.refresh_token)
        except TransportError as e:
            raise CredentialRefreshFailed(owner_id, str(e)) from e

        access_token = tokens.get("access_token")
        expires_in = tokens.get("expires_in")
        if not access_token or expires_in is None:
            raise CredentialRefreshFailed(owner_id, "Token response missing access_token or expires_in")

        try:
            expires_at = now + int(expires_in)
        except (TypeError, ValueError) as e:
            raise CredentialRefreshFailed(owner_id, f"Token response has invalid expires_in: {expires_in!r}") from e

        refreshed = credentials.model_copy(
            update={
                "access_token": access_token,
                "expires_at": expires_at,
                # Spotify only sometimes rotates the refresh token
                "refresh_token": tokens.get("refresh_token") or credentials.refresh_token,
            }
        )

        try:
            await self.store.update_credentials(refreshed)
        except Exception as e:
            raise CredentialRefreshFailed(owner_id, f"Could not persist refreshed tokens: {e}") from e

        return refreshed
