"""Playlist Rescue - keep a personal copy of a Spotify playlist topped up."""

__version__ = "0.1.0"
