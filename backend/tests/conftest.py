"""
Pytest configuration and fixtures for the workspace service tests.
"""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from backend.config import settings
from backend.main import app


@pytest.fixture(autouse=True)
def workspace_dirs(tmp_path, monkeypatch):
    """Point uploads/dist at a fresh temp directory and shorten the sync timers."""
    uploads = tmp_path / "uploads"
    dist = tmp_path / "dist"
    monkeypatch.setattr(settings, "UPLOADS_DIR", str(uploads))
    monkeypatch.setattr(settings, "DIST_DIR", str(dist))
    monkeypatch.setattr(settings, "SYNC_DEBOUNCE_SECONDS", 0.05)
    monkeypatch.setattr(settings, "STYLE_PERSIST_INTERVAL_SECONDS", 0.05)
    return uploads, dist


@pytest.fixture
def uploads_dir(workspace_dirs):
    uploads, _ = workspace_dirs
    uploads.mkdir(parents=True, exist_ok=True)
    return uploads


@pytest_asyncio.fixture
async def async_client():
    """Async HTTP client against the ASGI app."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
