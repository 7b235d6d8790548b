"""Shared test fixtures for Playlist Rescue."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from playlist_rescue.core.config import Settings
from playlist_rescue.core.models import SpotifyTokens


@pytest.fixture
def mock_settings() -> Settings:
    """Create mock settings for the Spotify client."""
    settings = MagicMock(spec=Settings)
    settings.spotify_client_id = "test_client_id"
    settings.spotify_client_secret = "test_client_secret"
    settings.spotify_page_size = 100
    settings.spotify_request_timeout_seconds = 30.0
    settings.rescued_playlist_suffix = " (rescued)"
    return settings


@pytest.fixture
def tokens() -> SpotifyTokens:
    """A token pair for API calls."""
    return SpotifyTokens(access_token="access123", refresh_token="refresh456")


@pytest.fixture
def mock_http_client():
    """Patch httpx.AsyncClient and yield the client bound inside ``async with``."""
    with patch("httpx.AsyncClient") as mock_client:
        inner = mock_client.return_value.__aenter__.return_value
        inner.request = AsyncMock()
        inner.post = AsyncMock()
        inner.get = AsyncMock()
        yield inner
