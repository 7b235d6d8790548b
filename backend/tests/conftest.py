"""Shared test fixtures for backend tests."""

from collections.abc import Generator
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from backend.config import BackendSettings
from backend.services.collection_repository import CollectionRepository
from backend.services.collection_service import CollectionService
from backend.services.credential_store import CredentialStore
from backend.services.ingestion_ledger import IngestionLedger
from backend.services.rescue_service import RescueService
from backend.services.token_service import TokenRefresher
from playlist_rescue.core.exceptions import PlaylistNotFound, TransportError
from playlist_rescue.core.models import SourcePlaylist, SpotifyTokens

NOW = 1_700_000_000


class InMemoryFirestore:
    """Dict-backed stand-in for FirestoreService.

    Supports equality filters and ``limit``, which is all the services use.
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.fail_batch_set = False
        self.batch_set_calls = 0

    def docs(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(collection, {})

    async def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self.docs(collection).get(doc_id)
        if doc is None:
            return None
        return {"id": doc_id, **doc}

    async def set_document(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        if merge and doc_id in self.docs(collection):
            self.docs(collection)[doc_id].update(data)
        else:
            self.docs(collection)[doc_id] = dict(data)

    async def update_document(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        if doc_id not in self.docs(collection):
            raise KeyError(f"No document to update: {collection}/{doc_id}")
        self.docs(collection)[doc_id].update(data)

    async def delete_document(self, collection: str, doc_id: str) -> None:
        self.docs(collection).pop(doc_id, None)

    async def batch_set_documents(self, collection: str, documents: dict[str, dict[str, Any]]) -> None:
        self.batch_set_calls += 1
        if self.fail_batch_set:
            raise RuntimeError("Firestore unavailable")
        for doc_id, data in documents.items():
            self.docs(collection)[doc_id] = dict(data)

    async def batch_delete_documents(self, collection: str, doc_ids: list[str]) -> None:
        for doc_id in doc_ids:
            self.docs(collection).pop(doc_id, None)

    async def query_documents(
        self,
        collection: str,
        filters: list[tuple[str, str, Any]] | None = None,
        order_by: str | None = None,
        order_direction: str = "ASCENDING",
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        results = []
        for doc_id, doc in self.docs(collection).items():
            if all(op == "==" and doc.get(field) == value for field, op, value in filters or []):
                results.append({"id": doc_id, **doc})
        if limit:
            results = results[:limit]
        return results

    async def count_documents(self, collection: str, filters: list[tuple[str, str, Any]] | None = None) -> int:
        return len(await self.query_documents(collection, filters=filters))

    # Seeding helpers

    def add_account(self, owner_id: str, expires_at: int = NOW + 3600, **overrides: Any) -> None:
        self.docs("accounts")[owner_id] = {
            "provider_account_id": f"spotify_{owner_id}",
            "access_token": f"access_{owner_id}",
            "refresh_token": f"refresh_{owner_id}",
            "expires_at": expires_at,
            **overrides,
        }

    def add_playlist(self, playlist_id: str, name: str = "Discover Weekly", cover: str | None = None) -> None:
        self.docs("playlists")[playlist_id] = {"name": name, "cover": cover}

    def add_collection(
        self,
        collection_id: str,
        owner_id: str,
        source_playlist_id: str,
        mode: str = "WEEKLY",
        destination_playlist_id: str | None = None,
        collecting: bool = True,
        added: datetime | None = None,
    ) -> None:
        self.docs("collections")[collection_id] = {
            "owner_id": owner_id,
            "source_playlist_id": source_playlist_id,
            "destination_playlist_id": destination_playlist_id,
            "mode": mode,
            "collecting": collecting,
            "added": (added or datetime(2024, 1, 1, tzinfo=UTC)).isoformat(),
        }

    def ledger_track_ids(self, collection_id: str) -> set[str]:
        return {
            doc["track_id"] for doc in self.docs("ingested_tracks").values() if doc["collection_id"] == collection_id
        }


class FakeSpotify:
    """In-memory Spotify covering the calls the services make."""

    TRACK_ADD_LIMIT = 100

    def __init__(self) -> None:
        self.source_tracks: dict[str, list[str]] = {}
        self.source_meta: dict[str, SourcePlaylist] = {}
        self.destinations: dict[str, list[str]] = {}
        self.created: list[dict[str, Any]] = []
        self.covers: dict[str, str] = {}
        self.unfollowed: list[str] = []
        self.refresh_calls: list[str] = []
        self.add_calls: list[tuple[str, list[str]]] = []
        self.fetch_calls: list[tuple[str, str]] = []
        self.refresh_response: dict[str, Any] = {"access_token": "fresh_access", "expires_in": 3600}
        self.refresh_error: Exception | None = None
        self.fail_add_on_call: int | None = None
        self.fail_cover = False
        self.missing: set[str] = set()
        self.fail_fetch_for: dict[str, Exception] = {}

    def add_source(self, playlist_id: str, track_ids: list[str], name: str = "Discover Weekly") -> None:
        self.source_tracks[playlist_id] = list(track_ids)
        self.source_meta[playlist_id] = SourcePlaylist(id=playlist_id, name=name)

    async def refresh_access_token(self, refresh_token: str) -> dict[str, Any]:
        self.refresh_calls.append(refresh_token)
        if self.refresh_error is not None:
            raise self.refresh_error
        return dict(self.refresh_response)

    async def get_playlist(self, tokens: SpotifyTokens, playlist_id: str) -> SourcePlaylist:
        if playlist_id in self.missing or playlist_id not in self.source_meta:
            raise PlaylistNotFound(playlist_id)
        return self.source_meta[playlist_id]

    async def get_all_playlist_track_ids(
        self, tokens: SpotifyTokens, playlist_id: str, page_size: int | None = None
    ) -> list[str]:
        self.fetch_calls.append((tokens.access_token, playlist_id))
        if playlist_id in self.fail_fetch_for:
            raise self.fail_fetch_for[playlist_id]
        if playlist_id in self.missing or playlist_id not in self.source_tracks:
            raise PlaylistNotFound(playlist_id)
        return list(self.source_tracks[playlist_id])

    async def create_playlist(
        self, tokens: SpotifyTokens, user_id: str, name: str, description: str, public: bool = True
    ) -> str:
        playlist_id = f"dest{len(self.created) + 1}"
        self.created.append({"id": playlist_id, "user_id": user_id, "name": name, "description": description})
        self.destinations[playlist_id] = []
        return playlist_id

    async def upload_playlist_cover(self, tokens: SpotifyTokens, playlist_id: str, cover_url: str) -> None:
        if self.fail_cover:
            raise TransportError("cover", "Cover download failed", status_code=404)
        self.covers[playlist_id] = cover_url

    async def add_tracks_to_playlist(self, tokens: SpotifyTokens, playlist_id: str, track_ids: list[str]) -> str:
        if len(track_ids) > self.TRACK_ADD_LIMIT:
            raise ValueError("Too many tracks")
        self.add_calls.append((playlist_id, list(track_ids)))
        if self.fail_add_on_call is not None and len(self.add_calls) == self.fail_add_on_call:
            raise TransportError("Spotify", "API error: internal", status_code=500)
        if playlist_id in self.missing:
            raise PlaylistNotFound(playlist_id)
        self.destinations.setdefault(playlist_id, []).extend(track_ids)
        return f"snapshot{len(self.add_calls)}"

    async def unfollow_playlist(self, tokens: SpotifyTokens, playlist_id: str) -> None:
        self.unfollowed.append(playlist_id)


@pytest.fixture
def mock_backend_settings() -> BackendSettings:
    """Create backend settings for testing."""
    return BackendSettings(
        environment="development",
        google_cloud_project="test-project",
    )


@pytest.fixture
def now() -> int:
    """The frozen epoch time the token refresher sees."""
    return NOW


@pytest.fixture
def fake_firestore() -> InMemoryFirestore:
    """In-memory Firestore."""
    return InMemoryFirestore()


@pytest.fixture
def fake_spotify() -> FakeSpotify:
    """In-memory Spotify."""
    return FakeSpotify()


@pytest.fixture
def credential_store(fake_firestore: InMemoryFirestore) -> CredentialStore:
    return CredentialStore(fake_firestore)  # type: ignore[arg-type]


@pytest.fixture
def token_refresher(credential_store: CredentialStore, fake_spotify: FakeSpotify) -> TokenRefresher:
    """Token refresher with a frozen clock at NOW."""
    return TokenRefresher(credential_store, fake_spotify, clock=lambda: NOW)  # type: ignore[arg-type]


@pytest.fixture
def collection_repository(fake_firestore: InMemoryFirestore, credential_store: CredentialStore) -> CollectionRepository:
    return CollectionRepository(fake_firestore, credential_store)  # type: ignore[arg-type]


@pytest.fixture
def ingestion_ledger(fake_firestore: InMemoryFirestore) -> IngestionLedger:
    return IngestionLedger(fake_firestore)  # type: ignore[arg-type]


@pytest.fixture
def rescue_service(
    mock_backend_settings: BackendSettings,
    collection_repository: CollectionRepository,
    token_refresher: TokenRefresher,
    ingestion_ledger: IngestionLedger,
    fake_spotify: FakeSpotify,
) -> RescueService:
    """RescueService wired to the in-memory fakes."""
    return RescueService(
        settings=mock_backend_settings,
        collections=collection_repository,
        token_refresher=token_refresher,
        ledger=ingestion_ledger,
        spotify=fake_spotify,  # type: ignore[arg-type]
    )


@pytest.fixture
def collection_service(
    collection_repository: CollectionRepository,
    credential_store: CredentialStore,
    token_refresher: TokenRefresher,
    ingestion_ledger: IngestionLedger,
    fake_spotify: FakeSpotify,
) -> CollectionService:
    """CollectionService wired to the in-memory fakes."""
    return CollectionService(
        collections=collection_repository,
        credential_store=credential_store,
        token_refresher=token_refresher,
        ledger=ingestion_ledger,
        spotify=fake_spotify,  # type: ignore[arg-type]
    )


@pytest.fixture
def mock_firestore_service() -> MagicMock:
    """Create a mock Firestore service for testing."""
    mock = MagicMock()
    mock.get_document = AsyncMock(return_value=None)
    mock.set_document = AsyncMock(return_value=None)
    mock.update_document = AsyncMock(return_value=None)
    mock.delete_document = AsyncMock(return_value=None)
    mock.query_documents = AsyncMock(return_value=[])
    mock.batch_set_documents = AsyncMock(return_value=None)
    mock.batch_delete_documents = AsyncMock(return_value=None)
    mock.count_documents = AsyncMock(return_value=0)
    return mock


@pytest.fixture
def mock_firestore_client() -> Generator[MagicMock, None, None]:
    """Mock Firestore async client."""
    with patch("google.cloud.firestore.AsyncClient") as mock:
        yield mock
