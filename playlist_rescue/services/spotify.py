"""Spotify API client for Playlist Rescue.

The client only holds configuration. Tokens travel with every call as a
``SpotifyTokens`` value, so one client can serve every account in a run.
"""

import base64
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from playlist_rescue.core.config import Settings
from playlist_rescue.core.exceptions import PlaylistNotFound, RateLimitError, TransportError
from playlist_rescue.core.models import SourcePlaylist, SpotifyTokens
from playlist_rescue.utils.identifiers import track_uri

logger = logging.getLogger(__name__)


class SpotifyClient:
    """Client for Spotify Web API."""

    AUTH_URL = "https://accounts.spotify.com/authorize"
    TOKEN_URL = "https://accounts.spotify.com/api/token"
    API_BASE = "https://api.spotify.com/v1"

    SCOPES = [
        "user-read-email",
        "user-library-read",
        "playlist-read-private",
        "playlist-read-collaborative",
        "playlist-modify-private",
        "playlist-modify-public",
        "ugc-image-upload",
    ]

    # Max URIs accepted by one "add items to playlist" request
    TRACK_ADD_LIMIT = 100

    def __init__(self, settings: Settings):
        self.settings = settings
        self.client_id = settings.spotify_client_id
        self.client_secret = settings.spotify_client_secret
        self.page_size = settings.spotify_page_size
        self.timeout = settings.spotify_request_timeout_seconds

    async def refresh_access_token(self, refresh_token: str) -> dict[str, Any]:
        """Exchange a refresh token for a new access token.

        Returns:
            Token response with ``access_token``, ``expires_in`` and
            optionally a rotated ``refresh_token``.

        Raises:
            TransportError: If the token endpoint is unreachable or rejects the request.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.TOKEN_URL,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": refresh_token,
                    },
                    auth=(self.client_id, self.client_secret),
                )
        except httpx.HTTPError as e:
            raise TransportError("Spotify", f"Token refresh failed: {e}") from e

        if response.status_code != 200:
            raise TransportError(
                "Spotify", f"Token refresh failed: {response.text}", status_code=response.status_code
            )

        try:
            result: dict[str, Any] = response.json()
        except ValueError as e:
            raise TransportError("Spotify", f"Token refresh returned invalid JSON: {e}") from e
        if not isinstance(result, dict):
            raise TransportError("Spotify", "Token refresh returned a non-object body")
        return result

    async def get_playlist(self, tokens: SpotifyTokens, playlist_id: str) -> SourcePlaylist:
        """Look up a playlist's name and cover."""
        data = await self._api_request("GET", f"/playlists/{playlist_id}", tokens, playlist_id=playlist_id)
        images = data.get("images") or []
        return SourcePlaylist(
            id=data.get("id", playlist_id),
            name=data.get("name", ""),
            cover=images[0].get("url") if images else None,
        )

    async def get_playlist_tracks(
        self,
        tokens: SpotifyTokens,
        playlist_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Get one page of a playlist's items."""
        return await self._api_request(
            "GET",
            f"/playlists/{playlist_id}/tracks",
            tokens,
            params={"limit": limit, "offset": offset},
            playlist_id=playlist_id,
        )

    async def iter_playlist_track_ids(
        self,
        tokens: SpotifyTokens,
        playlist_id: str,
        page_size: int | None = None,
    ) -> AsyncIterator[str]:
        """Yield the track IDs of a playlist, one page in flight at a time.

        Stops when the page has no ``next`` link, or when a page comes back
        empty so a misbehaving backend can't loop us forever. Items without a
        track ID (local files, unavailable tracks) are skipped.
        """
        limit = page_size or self.page_size
        offset = 0
        while True:
            page = await self.get_playlist_tracks(tokens, playlist_id, limit=limit, offset=offset)
            items = page.get("items") or []
            logger.debug(f"Spotify playlist page: playlist_id={playlist_id}, offset={offset}, items={len(items)}")

            for item in items:
                track = item.get("track") or {}
                track_id = track.get("id")
                if track_id:
                    yield track_id

            offset += len(items)
            if not items or not page.get("next"):
                break

    async def get_all_playlist_track_ids(
        self,
        tokens: SpotifyTokens,
        playlist_id: str,
        page_size: int | None = None,
    ) -> list[str]:
        """Get every track ID of a playlist, in playlist order."""
        return [track_id async for track_id in self.iter_playlist_track_ids(tokens, playlist_id, page_size)]

    async def create_playlist(
        self,
        tokens: SpotifyTokens,
        user_id: str,
        name: str,
        description: str,
        public: bool = True,
    ) -> str:
        """Create a playlist owned by ``user_id`` and return its ID."""
        data = await self._api_request(
            "POST",
            f"/users/{user_id}/playlists",
            tokens,
            json={"name": name, "description": description, "public": public},
        )
        playlist_id = data.get("id")
        if not playlist_id:
            raise TransportError("Spotify", f"Create playlist returned no id for user {user_id}")
        return str(playlist_id)

    async def upload_playlist_cover(self, tokens: SpotifyTokens, playlist_id: str, cover_url: str) -> None:
        """Copy an image from ``cover_url`` onto a playlist as its cover."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                image = await client.get(cover_url)
        except httpx.HTTPError as e:
            raise TransportError("cover", f"Cover download failed: {e}") from e

        if image.status_code != 200:
            raise TransportError("cover", f"Cover download failed: {cover_url}", status_code=image.status_code)

        await self._api_request(
            "PUT",
            f"/playlists/{playlist_id}/images",
            tokens,
            content=base64.b64encode(image.content),
            content_type="image/jpeg",
            playlist_id=playlist_id,
        )

    async def add_tracks_to_playlist(
        self, tokens: SpotifyTokens, playlist_id: str, track_ids: list[str]
    ) -> str | None:
        """Append tracks to a playlist.

        At most ``TRACK_ADD_LIMIT`` tracks per call; callers chunk larger lists.

        Returns:
            The playlist's new snapshot ID.
        """
        if len(track_ids) > self.TRACK_ADD_LIMIT:
            raise ValueError(f"Cannot add more than {self.TRACK_ADD_LIMIT} tracks per request")

        data = await self._api_request(
            "POST",
            f"/playlists/{playlist_id}/tracks",
            tokens,
            json={"uris": [track_uri(track_id) for track_id in track_ids]},
            playlist_id=playlist_id,
        )
        return data.get("snapshot_id")

    async def unfollow_playlist(self, tokens: SpotifyTokens, playlist_id: str) -> None:
        """Unfollow (Spotify's "delete") a playlist for the current user."""
        await self._api_request("DELETE", f"/playlists/{playlist_id}/followers", tokens, playlist_id=playlist_id)

    async def _api_request(
        self,
        method: str,
        endpoint: str,
        tokens: SpotifyTokens,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        content: bytes | None = None,
        content_type: str | None = None,
        playlist_id: str | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated API request.

        A 404 on a playlist-scoped endpoint (``playlist_id`` given) raises
        ``PlaylistNotFound``; every other failure is a ``TransportError``.
        """
        headers = {"Authorization": f"Bearer {tokens.access_token}"}
        if content_type:
            headers["Content-Type"] = content_type

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    f"{self.API_BASE}{endpoint}",
                    headers=headers,
                    params=params,
                    json=json,
                    content=content,
                )
        except httpx.HTTPError as e:
            raise TransportError("Spotify", f"{method} {endpoint} failed: {e}") from e

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "60")
            raise RateLimitError("Spotify", f"Rate limited. Retry after {retry_after}s", status_code=429)

        if response.status_code == 404 and playlist_id is not None:
            raise PlaylistNotFound(playlist_id)

        if not 200 <= response.status_code < 300:
            raise TransportError("Spotify", f"API error: {response.text}", status_code=response.status_code)

        if not response.content:
            return {}

        result: dict[str, Any] = response.json()
        return result
