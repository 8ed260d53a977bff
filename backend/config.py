"""
Pagesmith configuration — all environment variables in one place.

Read from environment at runtime.
"""

from __future__ import annotations

import os

from engine.kernel.preview import BABEL_CDN_URL, REACT_CDN_URL, REACT_DOM_CDN_URL
from engine.kernel.types import DEFAULT_DEBOUNCE_SECONDS, DEFAULT_PERSIST_INTERVAL_SECONDS


class Settings:
    """Application settings from environment variables."""

    # Workspace storage
    UPLOADS_DIR: str = os.environ.get("UPLOADS_DIR", "uploads")
    DIST_DIR: str = os.environ.get("DIST_DIR", "dist")

    # Sync engine
    SYNC_DEBOUNCE_SECONDS: float = float(os.environ.get("SYNC_DEBOUNCE_SECONDS", DEFAULT_DEBOUNCE_SECONDS))
    STYLE_PERSIST_INTERVAL_SECONDS: float = float(
        os.environ.get("STYLE_PERSIST_INTERVAL_SECONDS", DEFAULT_PERSIST_INTERVAL_SECONDS)
    )

    # Preview runtime (component mode)
    REACT_CDN_URL: str = os.environ.get("REACT_CDN_URL", REACT_CDN_URL)
    REACT_DOM_CDN_URL: str = os.environ.get("REACT_DOM_CDN_URL", REACT_DOM_CDN_URL)
    BABEL_CDN_URL: str = os.environ.get("BABEL_CDN_URL", BABEL_CDN_URL)

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    @property
    def CORS_ORIGINS(self) -> list[str]:
        raw = os.environ.get("CORS_ORIGINS")
        if raw:
            return [origin.strip() for origin in raw.split(",") if origin.strip()]
        return ["http://localhost:3000", "http://localhost:5173"] if self.ENVIRONMENT == "development" else []


# Singleton instance
settings = Settings()

if settings.SYNC_DEBOUNCE_SECONDS < 0:
    raise RuntimeError("SYNC_DEBOUNCE_SECONDS must not be negative")
