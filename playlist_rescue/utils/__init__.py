"""Utility modules for Playlist Rescue."""

from playlist_rescue.utils.identifiers import (
    parse_playlist_identifier,
    rescued_playlist_description,
    rescued_playlist_name,
    track_uri,
)

__all__ = [
    "parse_playlist_identifier",
    "rescued_playlist_name",
    "rescued_playlist_description",
    "track_uri",
]
