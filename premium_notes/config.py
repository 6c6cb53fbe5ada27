"""
Configuration module for the notes client.

The application reads its configuration primarily from environment
variables, with sensible defaults to make local development simple.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path


class Settings:
    """Defines runtime configuration for the notes client."""

    debug: bool = False

    # Backend-as-a-service
    supabase_url: str = "http://127.0.0.1:54321"
    supabase_anon_key: str = ""
    image_bucket: str = "note-images"
    redirect_url: str = "http://localhost:8501"
    request_timeout_seconds: int = 30

    # UI server
    server_address: str = "localhost"
    server_port: int = 8501

    # Local cache
    cache_database_url: str = (
        f"sqlite:///{Path.home() / '.premium_notes' / 'cache.db'}"
    )

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"

    def update_from_env(self) -> None:
        """Override defaults with values from the environment."""
        import os

        self.debug = os.getenv("NOTES_DEBUG", str(self.debug)).lower() in {
            "1",
            "true",
            "yes",
        }

        self.supabase_url = os.getenv("SUPABASE_URL", self.supabase_url)
        self.supabase_anon_key = os.getenv(
            "SUPABASE_ANON_KEY", self.supabase_anon_key
        )
        self.image_bucket = os.getenv("NOTES_IMAGE_BUCKET", self.image_bucket)
        self.redirect_url = os.getenv("NOTES_REDIRECT_URL", self.redirect_url)
        self.request_timeout_seconds = int(
            os.getenv(
                "NOTES_REQUEST_TIMEOUT",
                str(self.request_timeout_seconds),
            )
        )

        self.server_address = os.getenv("NOTES_SERVER_ADDRESS", self.server_address)
        self.server_port = int(os.getenv("NOTES_SERVER_PORT", str(self.server_port)))

        self.cache_database_url = os.getenv(
            "NOTES_CACHE_URL", self.cache_database_url
        )

        self.log_level = os.getenv("LOG_LEVEL", self.log_level)
        self.log_format = os.getenv("LOG_FORMAT", self.log_format)


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of Settings populated from environment."""
    settings = Settings()
    settings.update_from_env()
    return settings


__all__ = ["Settings", "get_settings"]
