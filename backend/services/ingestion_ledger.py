"""Append-only record of tracks delivered to each collection."""

import logging
from datetime import UTC, datetime

from backend.services.firestore_service import FirestoreService
from playlist_rescue.core.exceptions import LedgerWriteFailed
from playlist_rescue.core.models import IngestionRecord

logger = logging.getLogger(__name__)


class IngestionLedger:
    """Which tracks each collection has already received.

    One document per ``(collection_id, track_id)`` pair, keyed
    ``"<collection_id>:<track_id>"`` so a repeated insert can never create a
    second row.
    """

    INGESTED_TRACKS_COLLECTION = "ingested_tracks"

    def __init__(self, firestore: FirestoreService):
        self.firestore = firestore

    async def get_ingested_track_ids(self, collection_id: str) -> set[str]:
        """Get the IDs of every track already delivered to a collection."""
        docs = await self.firestore.query_documents(
            self.INGESTED_TRACKS_COLLECTION,
            filters=[("collection_id", "==", collection_id)],
        )
        return {doc["track_id"] for doc in docs if doc.get("track_id")}

    async def record_ingested(self, collection_id: str, track_ids: list[str]) -> list[IngestionRecord]:
        """Record tracks as delivered, in one batched write.

        Raises:
            LedgerWriteFailed: If the write fails.
        """
        if not track_ids:
            return []

        now = datetime.now(UTC)
        records = [
            IngestionRecord(collection_id=collection_id, track_id=track_id, ingested_at=now)
            for track_id in track_ids
        ]

        try:
            await self.firestore.batch_set_documents(
                self.INGESTED_TRACKS_COLLECTION,
                {
                    record.key: {
                        "collection_id": record.collection_id,
                        "track_id": record.track_id,
                        "ingested_at": record.ingested_at.isoformat(),
                    }
                    for record in records
                },
            )
        except Exception as e:
            raise LedgerWriteFailed(collection_id, len(track_ids), str(e)) from e

        return records

    async def forget_collection(self, collection_id: str) -> int:
        """Delete a removed collection's rows.

        Only used when a collection itself is deleted, never during a rescue run.

        Returns:
            Number of rows deleted.
        """
        docs = await self.firestore.query_documents(
            self.INGESTED_TRACKS_COLLECTION,
            filters=[("collection_id", "==", collection_id)],
        )
        doc_ids = [doc["id"] for doc in docs]
        if doc_ids:
            await self.firestore.batch_delete_documents(self.INGESTED_TRACKS_COLLECTION, doc_ids)
        logger.info(f"Forgot ingested tracks: collection_id={collection_id}, count={len(doc_ids)}")
        return len(doc_ids)
