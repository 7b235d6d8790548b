"""Custom exceptions for Playlist Rescue."""


class PlaylistRescueError(Exception):
    """Base exception for all Playlist Rescue errors."""

    pass


class ValidationError(PlaylistRescueError):
    """Validation failed."""

    pass


class NotFoundError(PlaylistRescueError):
    """Resource not found."""

    pass


class DuplicateCollectionError(ValidationError):
    """The owner already collects this playlist."""

    pass


class TransportError(PlaylistRescueError):
    """External service call failed (network error or unexpected status)."""

    def __init__(self, service: str, message: str, status_code: int | None = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class RateLimitError(TransportError):
    """Rate limited by external service."""

    pass


class PlaylistNotFound(PlaylistRescueError):
    """A source or destination playlist does not exist (or is not visible)."""

    def __init__(self, playlist_id: str):
        self.playlist_id = playlist_id
        super().__init__(f"Playlist not found: {playlist_id}")


class CredentialRefreshFailed(PlaylistRescueError):
    """Could not obtain a valid access token for an account."""

    def __init__(self, owner_id: str, message: str):
        self.owner_id = owner_id
        super().__init__(f"Credential refresh failed for owner {owner_id}: {message}")


class LedgerWriteFailed(PlaylistRescueError):
    """Delivered tracks could not be recorded in the ingestion ledger."""

    def __init__(self, collection_id: str, track_count: int, message: str):
        self.collection_id = collection_id
        self.track_count = track_count
        super().__init__(
            f"Ledger write failed for collection {collection_id} ({track_count} tracks): {message}"
        )
