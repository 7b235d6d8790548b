"""Core data models for Playlist Rescue."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class CollectionMode(str, Enum):
    """How often a collection is topped up."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class SpotifyTokens(BaseModel):
    """Token pair handed to every Spotify Web API call."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str


class CredentialSet(BaseModel):
    """OAuth credentials of one connected Spotify account."""

    owner_id: str
    provider_account_id: str  # Spotify user id, owns created playlists
    access_token: str
    refresh_token: str
    expires_at: int  # Epoch seconds

    def is_expired(self, now: float) -> bool:
        """Check expiry in whole seconds, without any skew margin."""
        return int(now) >= self.expires_at

    def tokens(self) -> SpotifyTokens:
        """Get the token pair for API calls."""
        return SpotifyTokens(access_token=self.access_token, refresh_token=self.refresh_token)


class SourcePlaylist(BaseModel):
    """Cached metadata of a playlist someone collects."""

    id: str
    name: str
    cover: str | None = None


class Collection(BaseModel):
    """A user's subscription to a source playlist."""

    id: str
    owner_id: str
    source_playlist_id: str
    destination_playlist_id: str | None = None
    mode: CollectionMode = CollectionMode.WEEKLY
    collecting: bool = True
    added: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ActiveCollection(BaseModel):
    """A collection joined with its source playlist and its owner's credentials.

    ``source`` is None when the playlist's cached metadata is missing.
    """

    collection: Collection
    source: SourcePlaylist | None = None
    credentials: CredentialSet | None = None

    @property
    def owner_id(self) -> str:
        return self.collection.owner_id


class IngestionRecord(BaseModel):
    """A track already delivered to a collection's destination playlist."""

    collection_id: str
    track_id: str
    ingested_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def key(self) -> str:
        """Document id; unique per (collection, track) pair."""
        return f"{self.collection_id}:{self.track_id}"
