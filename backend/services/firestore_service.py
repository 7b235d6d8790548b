"""Firestore database service."""

from typing import Any

from google.cloud import firestore

from backend.config import BackendSettings


class FirestoreService:
    """Service for Firestore database operations."""

    # Firestore rejects write batches with more operations than this
    MAX_BATCH_WRITES = 500

    def __init__(self, settings: BackendSettings):
        self.settings = settings
        self._client: firestore.AsyncClient | None = None

    @property
    def client(self) -> firestore.AsyncClient:
        """Get or create Firestore client."""
        if self._client is None:
            self._client = firestore.AsyncClient(
                project=self.settings.google_cloud_project,
                database=self.settings.firestore_database,
            )
        return self._client

    def collection(self, name: str) -> firestore.AsyncCollectionReference:
        """Get a collection reference."""
        return self.client.collection(name)

    async def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        doc_ref = self.collection(collection).document(doc_id)
        doc = await doc_ref.get()
        if doc.exists:
            return {"id": doc.id, **doc.to_dict()}
        return None

    async def set_document(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        merge: bool = False,
    ) -> None:
        """Set a document (create or overwrite)."""
        doc_ref = self.collection(collection).document(doc_id)
        await doc_ref.set(data, merge=merge)

    async def update_document(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Update specific fields in a document.

        All fields are written in one request, so readers never see a
        partial update.
        """
        doc_ref = self.collection(collection).document(doc_id)
        await doc_ref.update(data)

    async def delete_document(self, collection: str, doc_id: str) -> None:
        """Delete a document."""
        doc_ref = self.collection(collection).document(doc_id)
        await doc_ref.delete()

    async def batch_set_documents(self, collection: str, documents: dict[str, dict[str, Any]]) -> None:
        """Write many documents, keyed by document ID.

        Each batch of up to ``MAX_BATCH_WRITES`` documents commits atomically.
        Re-writing an existing ID overwrites it, which keeps keyed inserts
        idempotent.
        """
        items = list(documents.items())
        for start in range(0, len(items), self.MAX_BATCH_WRITES):
            batch = self.client.batch()
            for doc_id, data in items[start : start + self.MAX_BATCH_WRITES]:
                batch.set(self.collection(collection).document(doc_id), data)
            await batch.commit()

    async def batch_delete_documents(self, collection: str, doc_ids: list[str]) -> None:
        """Delete many documents by ID."""
        for start in range(0, len(doc_ids), self.MAX_BATCH_WRITES):
            batch = self.client.batch()
            for doc_id in doc_ids[start : start + self.MAX_BATCH_WRITES]:
                batch.delete(self.collection(collection).document(doc_id))
            await batch.commit()

    async def query_documents(
        self,
        collection: str,
        filters: list[tuple[str, str, Any]] | None = None,
        order_by: str | None = None,
        order_direction: str = "ASCENDING",
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        """Query documents with filters.

        Args:
            collection: Collection name
            filters: List of (field, operator, value) tuples
            order_by: Field to order by
            order_direction: ASCENDING or DESCENDING
            limit: Max documents to return
            offset: Number of documents to skip

        Returns:
            List of document dictionaries with IDs
        """
        query = self.collection(collection)

        if filters:
            for field, op, value in filters:
                query = query.where(field, op, value)

        if order_by:
            direction = (
                firestore.Query.DESCENDING if order_direction == "DESCENDING" else firestore.Query.ASCENDING
            )
            query = query.order_by(order_by, direction=direction)

        if offset:
            query = query.offset(offset)

        if limit:
            query = query.limit(limit)

        docs = []
        async for doc in query.stream():
            docs.append({"id": doc.id, **doc.to_dict()})

        return docs

    async def count_documents(
        self,
        collection: str,
        filters: list[tuple[str, str, Any]] | None = None,
    ) -> int:
        """Count documents matching filters."""
        query = self.collection(collection)

        if filters:
            for field, op, value in filters:
                query = query.where(field, op, value)

        count_query = query.count()
        result = await count_query.get()
        return result[0][0].value


# Lazy initialization
_firestore_service: FirestoreService | None = None


def get_firestore_service(settings: BackendSettings | None = None) -> FirestoreService:
    """Get the shared Firestore service instance.

    Args:
        settings: Optional settings override (for testing).
    """
    global _firestore_service

    if _firestore_service is None or settings is not None:
        if settings is None:
            from backend.config import get_backend_settings

            settings = get_backend_settings()
        _firestore_service = FirestoreService(settings)

    return _firestore_service
