"""Spotify playlist reference helpers for Playlist Rescue."""

from playlist_rescue.core.exceptions import ValidationError


def parse_playlist_identifier(identifier: str) -> str:
    """Extract the bare playlist ID from a user-supplied reference.

    Accepts any of:
    - ID:  37i9dQZF1DXcBWIGoYBM5M
    - URI: spotify:playlist:37i9dQZF1DXcBWIGoYBM5M
    - URL: https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M?si=8e9e9e9e
      (including locale links such as https://open.spotify.com/intl-de/playlist/...)

    Raises:
        ValidationError: If nothing identifier-like remains.
    """
    result = identifier.strip()

    if result.lower().startswith(("http://", "https://")):
        result = result.split("?")[0].split("#")[0].rstrip("/").split("/")[-1]
    elif "spotify:playlist" in result:
        result = result.split(":")[-1]

    result = result.split("?")[0].strip()
    if not result:
        raise ValidationError(f"Not a playlist reference: {identifier!r}")
    return result


def rescued_playlist_name(source_name: str, suffix: str = " (rescued)") -> str:
    """Name of the destination playlist created for a source playlist."""
    return f"{source_name}{suffix}"


def rescued_playlist_description(source_name: str) -> str:
    """Description of the destination playlist created for a source playlist."""
    return f"Tracks rescued from '{source_name}' by Playlist Rescue."


def track_uri(track_id: str) -> str:
    """Spotify URI for a track ID."""
    return f"spotify:track:{track_id}"
