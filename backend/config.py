"""Backend-specific configuration."""

from functools import lru_cache

from playlist_rescue.core.config import Settings


class BackendSettings(Settings):
    """Extended settings for the backend API."""

    # QStash request signing (the scheduler calling the cron endpoint)
    qstash_current_signing_key: str = ""
    qstash_next_signing_key: str = ""

    # Accept unsigned cron requests outside production
    require_signed_cron_requests: bool = False

    @property
    def cron_signatures_required(self) -> bool:
        """Check if cron requests must carry a valid signature."""
        return self.is_production or self.require_signed_cron_requests


@lru_cache
def get_backend_settings() -> BackendSettings:
    """Get cached backend settings instance."""
    return BackendSettings()
