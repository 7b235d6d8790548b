"""Collection records and the joined view a rescue run works from."""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from backend.services.credential_store import CredentialStore
from backend.services.firestore_service import FirestoreService
from playlist_rescue.core.exceptions import DuplicateCollectionError
from playlist_rescue.core.models import (
    ActiveCollection,
    Collection,
    CollectionMode,
    CredentialSet,
    SourcePlaylist,
)

logger = logging.getLogger(__name__)


class CollectionRepository:
    """Collections, their source playlist metadata, and their owners' credentials.

    Documents:
    - ``collections/{collection_id}``
    - ``playlists/{source_playlist_id}`` (name and cover of collected playlists)
    - ``accounts/{owner_id}`` (through the CredentialStore)
    """

    COLLECTIONS_COLLECTION = "collections"
    PLAYLISTS_COLLECTION = "playlists"

    def __init__(self, firestore: FirestoreService, credential_store: CredentialStore):
        self.firestore = firestore
        self.credential_store = credential_store

    async def list_active(self, mode: CollectionMode) -> list[ActiveCollection]:
        """Get every collecting collection of a cadence, ordered by owner.

        Each row carries the source playlist metadata and the owner's
        credentials. Either is None when missing; the run reports such rows
        instead of processing them.
        """
        docs = await self.firestore.query_documents(
            self.COLLECTIONS_COLLECTION,
            filters=[("collecting", "==", True), ("mode", "==", mode.value)],
        )
        collections = sorted(
            (self.doc_to_collection(doc) for doc in docs),
            key=lambda c: (c.owner_id, c.added),
        )

        credentials: dict[str, CredentialSet | None] = {}
        sources: dict[str, SourcePlaylist | None] = {}
        rows: list[ActiveCollection] = []

        for collection in collections:
            if collection.owner_id not in credentials:
                credentials[collection.owner_id] = await self.credential_store.get_credentials(collection.owner_id)
            if collection.source_playlist_id not in sources:
                sources[collection.source_playlist_id] = await self.get_source_playlist(
                    collection.source_playlist_id
                )

            rows.append(
                ActiveCollection(
                    collection=collection,
                    source=sources[collection.source_playlist_id],
                    credentials=credentials[collection.owner_id],
                )
            )

        logger.info(f"Active collections: mode={mode.value}, count={len(rows)}, owners={len(credentials)}")
        return rows

    async def get_collection(self, collection_id: str) -> Collection | None:
        """Get a collection by ID."""
        doc = await self.firestore.get_document(self.COLLECTIONS_COLLECTION, collection_id)
        if doc is None:
            return None
        return self.doc_to_collection(doc)

    async def find_collection(self, owner_id: str, source_playlist_id: str) -> Collection | None:
        """Get an owner's collection of a given source playlist, if any."""
        docs = await self.firestore.query_documents(
            self.COLLECTIONS_COLLECTION,
            filters=[("owner_id", "==", owner_id), ("source_playlist_id", "==", source_playlist_id)],
            limit=1,
        )
        return self.doc_to_collection(docs[0]) if docs else None

    async def list_owner_collections(self, owner_id: str) -> list[Collection]:
        """Get all of an owner's collections, newest first."""
        docs = await self.firestore.query_documents(
            self.COLLECTIONS_COLLECTION,
            filters=[("owner_id", "==", owner_id)],
        )
        return sorted((self.doc_to_collection(doc) for doc in docs), key=lambda c: c.added, reverse=True)

    async def create_collection(
        self,
        owner_id: str,
        source: SourcePlaylist,
        mode: CollectionMode = CollectionMode.WEEKLY,
    ) -> Collection:
        """Start collecting a playlist for an owner.

        Raises:
            DuplicateCollectionError: If the owner already collects this playlist.
        """
        if await self.find_collection(owner_id, source.id) is not None:
            raise DuplicateCollectionError(f"Collection already exists for playlist {source.id}")

        await self.save_source_playlist(source)

        collection = Collection(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            source_playlist_id=source.id,
            mode=mode,
            collecting=True,
            added=datetime.now(UTC),
        )
        await self.firestore.set_document(
            self.COLLECTIONS_COLLECTION,
            collection.id,
            {
                "owner_id": collection.owner_id,
                "source_playlist_id": collection.source_playlist_id,
                "destination_playlist_id": None,
                "mode": collection.mode.value,
                "collecting": collection.collecting,
                "added": collection.added.isoformat(),
            },
        )
        logger.info(f"Created collection: collection_id={collection.id}, owner_id={owner_id}, playlist_id={source.id}")
        return collection

    async def set_destination(self, collection_id: str, destination_playlist_id: str) -> None:
        """Record the playlist a collection delivers into."""
        await self.firestore.update_document(
            self.COLLECTIONS_COLLECTION,
            collection_id,
            {"destination_playlist_id": destination_playlist_id},
        )

    async def delete_collection(self, collection_id: str) -> None:
        """Delete a collection record."""
        await self.firestore.delete_document(self.COLLECTIONS_COLLECTION, collection_id)

    async def get_source_playlist(self, playlist_id: str) -> SourcePlaylist | None:
        """Get cached metadata of a collected playlist."""
        doc = await self.firestore.get_document(self.PLAYLISTS_COLLECTION, playlist_id)
        if doc is None:
            return None
        return SourcePlaylist(id=playlist_id, name=doc.get("name", ""), cover=doc.get("cover"))

    async def save_source_playlist(self, source: SourcePlaylist) -> None:
        """Cache metadata of a collected playlist."""
        await self.firestore.set_document(
            self.PLAYLISTS_COLLECTION,
            source.id,
            {"name": source.name, "cover": source.cover},
            merge=True,
        )

    @staticmethod
    def doc_to_collection(doc: dict[str, Any]) -> Collection:
        """Convert Firestore document to Collection model."""
        return Collection(
            id=doc.get("id", ""),
            owner_id=doc.get("owner_id", ""),
            source_playlist_id=doc.get("source_playlist_id", ""),
            destination_playlist_id=doc.get("destination_playlist_id"),
            mode=CollectionMode(doc.get("mode", CollectionMode.WEEKLY.value)),
            collecting=bool(doc.get("collecting", True)),
            added=(datetime.fromisoformat(doc["added"]) if doc.get("added") else datetime.now(UTC)),
        )
