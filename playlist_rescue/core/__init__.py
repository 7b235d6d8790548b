"""Core modules for Playlist Rescue."""

from playlist_rescue.core.config import Settings, get_settings
from playlist_rescue.core.models import (
    ActiveCollection,
    Collection,
    CollectionMode,
    CredentialSet,
    IngestionRecord,
    SourcePlaylist,
    SpotifyTokens,
)

__all__ = [
    "Settings",
    "get_settings",
    "ActiveCollection",
    "Collection",
    "CollectionMode",
    "CredentialSet",
    "IngestionRecord",
    "SourcePlaylist",
    "SpotifyTokens",
]
