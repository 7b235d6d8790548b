"""Configuration management for Playlist Rescue."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    # Google Cloud
    google_cloud_project: str = ""
    firestore_database: str = "(default)"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Spotify OAuth
    spotify_client_id: str = ""
    spotify_client_secret: str = ""

    # Spotify Web API behaviour
    spotify_page_size: int = 100  # Max allowed by /playlists/{id}/tracks
    spotify_request_timeout_seconds: float = 30.0

    # Destination playlists
    rescued_playlist_suffix: str = " (rescued)"

    # Emulators (auto-detected)
    firestore_emulator_host: str | None = None

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def is_emulated(self) -> bool:
        """Check if using the Firestore emulator."""
        return self.firestore_emulator_host is not None

    @property
    def api_base_url(self) -> str:
        """Get the API base URL."""
        return f"http://{self.api_host}:{self.api_port}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
