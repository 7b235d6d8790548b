"""Adding and removing collections.

Handles:
- Resolving a user-supplied playlist reference and caching its metadata
- Rejecting duplicate collections
- Removing a collection, optionally unfollowing its destination playlist
"""

import logging

from backend.config import BackendSettings
from backend.services.collection_repository import CollectionRepository
from backend.services.credential_store import CredentialStore
from backend.services.firestore_service import FirestoreService
from backend.services.ingestion_ledger import IngestionLedger
from backend.services.token_service import TokenRefresher
from playlist_rescue.core.exceptions import NotFoundError
from playlist_rescue.core.models import Collection, CollectionMode, SpotifyTokens
from playlist_rescue.services.spotify import SpotifyClient
from playlist_rescue.utils.identifiers import parse_playlist_identifier

logger = logging.getLogger(__name__)


class CollectionService:
    """Service for managing an owner's collections."""

    def __init__(
        self,
        collections: CollectionRepository,
        credential_store: CredentialStore,
        token_refresher: TokenRefresher,
        ledger: IngestionLedger,
        spotify: SpotifyClient,
    ):
        self.collections = collections
        self.credential_store = credential_store
        self.token_refresher = token_refresher
        self.ledger = ledger
        self.spotify = spotify

    async def add_collection(
        self,
        owner_id: str,
        identifier: str,
        mode: CollectionMode = CollectionMode.WEEKLY,
    ) -> Collection:
        """Start collecting a playlist.

        Args:
            owner_id: Owner of the new collection.
            identifier: Playlist ID, ``spotify:playlist:`` URI or open.spotify.com URL.
            mode: How often the collection is topped up.

        Raises:
            ValidationError: If the identifier is empty.
            NotFoundError: If the owner has no connected Spotify account.
            PlaylistNotFound: If Spotify doesn't know the playlist.
            DuplicateCollectionError: If the owner already collects it.
        """
        playlist_id = parse_playlist_identifier(identifier)
        tokens = await self._get_tokens(owner_id)

        source = await self.spotify.get_playlist(tokens, playlist_id)
        return await self.collections.create_collection(owner_id, source, mode)

    async def remove_collection(self, owner_id: str, collection_id: str, unfollow: bool = False) -> None:
        """Stop collecting and forget what was delivered.

        Args:
            owner_id: Owner requesting the removal.
            collection_id: Collection to remove.
            unfollow: Also unfollow the destination playlist on Spotify.

        Raises:
            NotFoundError: If the collection doesn't exist or belongs to someone else.
        """
        collection = await self.collections.get_collection(collection_id)
        if collection is None or collection.owner_id != owner_id:
            raise NotFoundError(f"Collection not found: {collection_id}")

        if unfollow and collection.destination_playlist_id:
            tokens = await self._get_tokens(owner_id)
            await self.spotify.unfollow_playlist(tokens, collection.destination_playlist_id)
            logger.info(
                f"Unfollowed destination playlist: collection_id={collection_id}, "
                f"playlist_id={collection.destination_playlist_id}"
            )

        await self.collections.delete_collection(collection_id)
        await self.ledger.forget_collection(collection_id)
        logger.info(f"Removed collection: collection_id={collection_id}, owner_id={owner_id}")

    async def list_collections(self, owner_id: str) -> list[Collection]:
        """Get an owner's collections, newest first."""
        return await self.collections.list_owner_collections(owner_id)

    async def _get_tokens(self, owner_id: str) -> SpotifyTokens:
        credentials = await self.credential_store.get_credentials(owner_id)
        if credentials is None:
            raise NotFoundError(f"No Spotify account connected for owner {owner_id}")
        credentials = await self.token_refresher.ensure_valid(credentials)
        return credentials.tokens()


def build_collection_service(settings: BackendSettings, firestore: FirestoreService) -> CollectionService:
    """Wire a CollectionService and its collaborators around one Firestore handle."""
    spotify = SpotifyClient(settings)
    credential_store = CredentialStore(firestore)
    return CollectionService(
        collections=CollectionRepository(firestore, credential_store),
        credential_store=credential_store,
        token_refresher=TokenRefresher(credential_store, spotify),
        ledger=IngestionLedger(firestore),
        spotify=spotify,
    )
