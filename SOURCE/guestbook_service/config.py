"""
Configuration module for the guestbook API.

The application reads its configuration primarily from environment
variables, with sensible defaults to make local development simple.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path


class Settings:
    """Defines runtime configuration for the guestbook service."""

    # Flask / server
    debug: bool = False
    secret_key: str = "change-me-in-production"
    api_prefix: str = "/api"
    host: str = "127.0.0.1"
    port: int = 5000
    log_level: str = "INFO"

    # Database
    database_url: str = (
        f"sqlite:///{Path(__file__).resolve().parent / 'guestbook.db'}"
    )

    # JWT
    jwt_secret_key: str = "replace-this-with-a-secure-random-value"
    access_token_expires_minutes: int = 60

    def update_from_env(self) -> None:
        """Override defaults with values from the environment."""
        self.debug = os.getenv("FLASK_DEBUG", str(self.debug)).lower() in {
            "1",
            "true",
            "yes",
        }
        self.secret_key = os.getenv("FLASK_SECRET_KEY", self.secret_key)
        self.api_prefix = os.getenv("API_PREFIX", self.api_prefix)
        self.host = os.getenv("HOST", self.host)
        self.port = int(os.getenv("PORT", str(self.port)))
        self.log_level = os.getenv("LOG_LEVEL", self.log_level).upper()

        self.database_url = os.getenv("DATABASE_URL", self.database_url)

        self.jwt_secret_key = os.getenv("JWT_SECRET_KEY", self.jwt_secret_key)
        self.access_token_expires_minutes = int(
            os.getenv(
                "ACCESS_TOKEN_EXPIRES_MINUTES",
                str(self.access_token_expires_minutes),
            )
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of Settings populated from environment."""
    settings = Settings()
    settings.update_from_env()
    return settings


__all__ = ["Settings", "get_settings"]
