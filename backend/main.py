"""
Pagesmith FastAPI application.

Entry point for the workspace service: file persistence, dependency
manifest, bundling, and the live editing socket.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.config import settings
from backend.routes import workspace as workspace_routes
from backend.routes import ws as ws_routes

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Startup: make sure the upload and dist directories exist.
    """
    Path(settings.UPLOADS_DIR).mkdir(parents=True, exist_ok=True)
    Path(settings.DIST_DIR).mkdir(parents=True, exist_ok=True)
    logger.info("Workspace ready: uploads=%s dist=%s", settings.UPLOADS_DIR, settings.DIST_DIR)

    yield

    logger.info("Workspace service stopped")


app = FastAPI(
    title="Pagesmith",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

if settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Register routes
app.include_router(workspace_routes.router)
app.include_router(ws_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}
