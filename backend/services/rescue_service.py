"""Scheduled playlist rescue runs.

For one cadence (DAILY, WEEKLY or MONTHLY) a run walks every collecting
collection, owner by owner:

1. make sure the owner's Spotify token is valid (once per owner),
2. create the destination playlist the first time a collection is seen,
3. fetch the complete source playlist,
4. drop tracks the ingestion ledger says were already delivered,
5. append the rest to the destination and record them in the ledger.

Failures are contained: a bad owner skips only that owner's collections, a
bad collection skips only itself. Re-running is always safe because step 4
only lets through what step 5 has not recorded.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from itertools import groupby

from backend.config import BackendSettings
from backend.models.rescue_run import CollectionOutcome, OutcomeStatus, RescueRunResult
from backend.services.collection_repository import CollectionRepository
from backend.services.credential_store import CredentialStore
from backend.services.firestore_service import FirestoreService
from backend.services.ingestion_ledger import IngestionLedger
from backend.services.token_service import TokenRefresher
from playlist_rescue.core.exceptions import (
    CredentialRefreshFailed,
    LedgerWriteFailed,
    PlaylistNotFound,
    TransportError,
)
from playlist_rescue.core.models import (
    ActiveCollection,
    CollectionMode,
    CredentialSet,
    SourcePlaylist,
    SpotifyTokens,
)
from playlist_rescue.services.spotify import SpotifyClient
from playlist_rescue.utils.identifiers import rescued_playlist_description, rescued_playlist_name

logger = logging.getLogger(__name__)


@dataclass
class OwnerBatch:
    """All collections of one owner in a run; they share one token refresh."""

    owner_id: str
    credentials: CredentialSet | None
    collections: list[ActiveCollection] = field(default_factory=list)


def group_by_owner(rows: list[ActiveCollection]) -> list[OwnerBatch]:
    """Partition active collections into per-owner batches, ordered by owner ID.

    Within a batch collections keep their ``added`` order.
    """
    ordered = sorted(rows, key=lambda row: (row.owner_id, row.collection.added))
    batches: list[OwnerBatch] = []
    for owner_id, group in groupby(ordered, key=lambda row: row.owner_id):
        collections = list(group)
        batches.append(
            OwnerBatch(owner_id=owner_id, credentials=collections[0].credentials, collections=collections)
        )
    return batches


def select_new_tracks(source_track_ids: list[str], ingested_track_ids: set[str]) -> list[str]:
    """Tracks of the source not yet delivered, in source order."""
    return [track_id for track_id in source_track_ids if track_id not in ingested_track_ids]


class RescueService:
    """Runs the scheduled rescue of every collection of a cadence."""

    def __init__(
        self,
        settings: BackendSettings,
        collections: CollectionRepository,
        token_refresher: TokenRefresher,
        ledger: IngestionLedger,
        spotify: SpotifyClient,
    ):
        """Initialize the rescue service.

        Args:
            settings: Backend settings.
            collections: Source of active collections; receives destination IDs.
            token_refresher: Keeps owners' tokens valid.
            ledger: Record of tracks already delivered.
            spotify: Spotify Web API client.
        """
        self.settings = settings
        self.collections = collections
        self.token_refresher = token_refresher
        self.ledger = ledger
        self.spotify = spotify

    async def rescue_playlists(self, mode: CollectionMode) -> RescueRunResult:
        """Rescue every collecting collection of a cadence.

        Args:
            mode: Which cadence's collections to process.

        Returns:
            RescueRunResult with one outcome per collection. Per-collection
            failures are reported there rather than raised.
        """
        result = RescueRunResult(mode=mode)
        rows = await self.collections.list_active(mode)
        batches = group_by_owner(rows)

        logger.info(f"Starting rescue run: mode={mode.value}, collections={len(rows)}, owners={len(batches)}")

        for batch in batches:
            result.outcomes.extend(await self._rescue_owner_batch(batch))

        result.completed_at = datetime.now(UTC)
        logger.info(
            f"Rescue run complete: mode={mode.value}, collections={result.collections_processed}, "
            f"tracks_added={result.tracks_added}, failures={result.failures}"
        )
        return result

    async def _rescue_owner_batch(self, batch: OwnerBatch) -> list[CollectionOutcome]:
        """Refresh an owner's token once, then rescue each of their collections."""
        if batch.credentials is None:
            logger.warning(
                f"Skipping owner without credentials: owner_id={batch.owner_id}, "
                f"collections={len(batch.collections)}"
            )
            return [
                self._skipped(row, OutcomeStatus.SKIPPED_NO_CREDENTIALS, "No Spotify credentials")
                for row in batch.collections
            ]

        try:
            credentials = await self.token_refresher.ensure_valid(batch.credentials)
        except CredentialRefreshFailed as e:
            logger.error(
                f"Skipping owner after failed token refresh: owner_id={batch.owner_id}, "
                f"collections={len(batch.collections)}, error={e}"
            )
            return [self._skipped(row, OutcomeStatus.SKIPPED_REFRESH_FAILED, str(e)) for row in batch.collections]

        tokens = credentials.tokens()
        outcomes = []
        for row in batch.collections:
            outcomes.append(await self._rescue_collection(row, credentials.provider_account_id, tokens))
        return outcomes

    async def _rescue_collection(
        self, row: ActiveCollection, user_id: str, tokens: SpotifyTokens
    ) -> CollectionOutcome:
        """Bring one collection's destination playlist up to date with its source."""
        collection = row.collection
        if row.source is None:
            logger.warning(
                f"Collection has no source metadata: collection_id={collection.id}, "
                f"playlist_id={collection.source_playlist_id}"
            )
            return self._skipped(
                row, OutcomeStatus.FAILED, f"Source playlist metadata missing: {collection.source_playlist_id}"
            )

        outcome = CollectionOutcome(
            collection_id=collection.id,
            owner_id=collection.owner_id,
            status=OutcomeStatus.UP_TO_DATE,
            destination_playlist_id=collection.destination_playlist_id,
        )

        try:
            destination_id = collection.destination_playlist_id
            if destination_id is None:
                destination_id = await self._create_destination(collection.id, row.source, user_id, tokens)
                outcome.destination_playlist_id = destination_id
                outcome.destination_created = True

            source_track_ids = await self._fetch_source(tokens, collection.source_playlist_id)
            outcome.tracks_fetched = len(source_track_ids)

            ingested = await self.ledger.get_ingested_track_ids(collection.id)
            new_track_ids = select_new_tracks(source_track_ids, ingested)

            if new_track_ids:
                await self._commit(collection.id, destination_id, new_track_ids, tokens, outcome)
                outcome.status = OutcomeStatus.RESCUED

            logger.info(
                f"Rescued collection: collection_id={collection.id}, owner_id={collection.owner_id}, "
                f"fetched={outcome.tracks_fetched}, already_ingested={len(ingested)}, added={outcome.tracks_added}"
            )

        except PlaylistNotFound as e:
            logger.warning(
                f"Playlist not found: collection_id={collection.id}, owner_id={collection.owner_id}, "
                f"playlist_id={e.playlist_id}"
            )
            outcome.status = OutcomeStatus.PLAYLIST_NOT_FOUND
            outcome.error = str(e)
        except TransportError as e:
            logger.warning(
                f"Spotify request failed: collection_id={collection.id}, owner_id={collection.owner_id}, "
                f"status_code={e.status_code}, error={e}"
            )
            outcome.status = OutcomeStatus.TRANSPORT_ERROR
            outcome.error = str(e)
        except LedgerWriteFailed as e:
            # Tracks reached Spotify but aren't recorded; the next run adds them again.
            logger.error(
                f"Ledger write failed after delivery, duplicates possible on next run: "
                f"collection_id={collection.id}, owner_id={collection.owner_id}, tracks={e.track_count}, error={e}"
            )
            outcome.status = OutcomeStatus.LEDGER_WRITE_FAILED
            outcome.error = str(e)
        except Exception as e:
            logger.exception(f"Unexpected error rescuing collection: collection_id={collection.id}")
            outcome.status = OutcomeStatus.FAILED
            outcome.error = f"Unexpected error: {e}"

        return outcome

    async def _create_destination(
        self, collection_id: str, source: SourcePlaylist, user_id: str, tokens: SpotifyTokens
    ) -> str:
        """Create the destination playlist and remember it on the collection."""
        playlist_id = await self.spotify.create_playlist(
            tokens,
            user_id=user_id,
            name=rescued_playlist_name(source.name, self.settings.rescued_playlist_suffix),
            description=rescued_playlist_description(source.name),
        )

        if source.cover:
            try:
                await self.spotify.upload_playlist_cover(tokens, playlist_id, source.cover)
            except (TransportError, PlaylistNotFound) as e:
                logger.warning(f"Cover upload failed: playlist_id={playlist_id}, error={e}")

        await self.collections.set_destination(collection_id, playlist_id)
        logger.info(f"Created destination playlist: collection_id={collection_id}, playlist_id={playlist_id}")
        return playlist_id

    async def _fetch_source(self, tokens: SpotifyTokens, playlist_id: str) -> list[str]:
        """Fetch every track of the source playlist; repeats keep their first position."""
        track_ids = await self.spotify.get_all_playlist_track_ids(tokens, playlist_id)
        return list(dict.fromkeys(track_ids))

    async def _commit(
        self,
        collection_id: str,
        destination_id: str,
        track_ids: list[str],
        tokens: SpotifyTokens,
        outcome: CollectionOutcome,
    ) -> None:
        """Append tracks to the destination, then record them, chunk by chunk.

        A chunk reaches the ledger only after Spotify accepted it, so an append
        failure never marks undelivered tracks as delivered.
        """
        chunk_size = self.spotify.TRACK_ADD_LIMIT
        for start in range(0, len(track_ids), chunk_size):
            chunk = track_ids[start : start + chunk_size]
            await self.spotify.add_tracks_to_playlist(tokens, destination_id, chunk)
            outcome.tracks_added += len(chunk)
            await self.ledger.record_ingested(collection_id, chunk)

    @staticmethod
    def _skipped(row: ActiveCollection, status: OutcomeStatus, error: str) -> CollectionOutcome:
        return CollectionOutcome(
            collection_id=row.collection.id,
            owner_id=row.owner_id,
            status=status,
            destination_playlist_id=row.collection.destination_playlist_id,
            error=error,
        )


def build_rescue_service(settings: BackendSettings, firestore: FirestoreService) -> RescueService:
    """Wire a RescueService and its collaborators around one Firestore handle."""
    spotify = SpotifyClient(settings)
    credential_store = CredentialStore(firestore)
    return RescueService(
        settings=settings,
        collections=CollectionRepository(firestore, credential_store),
        token_refresher=TokenRefresher(credential_store, spotify),
        ledger=IngestionLedger(firestore),
        spotify=spotify,
    )
