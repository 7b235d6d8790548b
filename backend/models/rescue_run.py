"""Models for rescue run results."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from playlist_rescue.core.models import CollectionMode


class OutcomeStatus(str, Enum):
    """What happened to one collection during a run."""

    RESCUED = "rescued"
    UP_TO_DATE = "up_to_date"
    SKIPPED_NO_CREDENTIALS = "skipped_no_credentials"
    SKIPPED_REFRESH_FAILED = "skipped_refresh_failed"
    PLAYLIST_NOT_FOUND = "playlist_not_found"
    TRANSPORT_ERROR = "transport_error"
    LEDGER_WRITE_FAILED = "ledger_write_failed"
    FAILED = "failed"

    @property
    def is_failure(self) -> bool:
        return self not in (OutcomeStatus.RESCUED, OutcomeStatus.UP_TO_DATE)


@dataclass
class CollectionOutcome:
    """Result of processing a single collection."""

    collection_id: str
    owner_id: str
    status: OutcomeStatus
    destination_playlist_id: str | None = None
    destination_created: bool = False
    tracks_fetched: int = 0
    tracks_added: int = 0
    error: str | None = None


@dataclass
class RescueRunResult:
    """Result of one scheduled rescue run."""

    mode: CollectionMode
    outcomes: list[CollectionOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def collections_processed(self) -> int:
        return len(self.outcomes)

    @property
    def tracks_added(self) -> int:
        return sum(o.tracks_added for o in self.outcomes)

    @property
    def failures(self) -> int:
        return sum(1 for o in self.outcomes if o.status.is_failure)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict (for logs and the CLI)."""
        return {
            "mode": self.mode.value,
            "collections_processed": self.collections_processed,
            "tracks_added": self.tracks_added,
            "failures": self.failures,
            "outcomes": [
                {
                    "collection_id": o.collection_id,
                    "owner_id": o.owner_id,
                    "status": o.status.value,
                    "destination_playlist_id": o.destination_playlist_id,
                    "destination_created": o.destination_created,
                    "tracks_fetched": o.tracks_fetched,
                    "tracks_added": o.tracks_added,
                    "error": o.error,
                }
                for o in self.outcomes
            ],
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
