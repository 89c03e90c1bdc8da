# src/parley_stage/main.py
"""Main entry point for the Parley application."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from parley_stage.api.v1 import (
    auth_router,
    chats_router,
    folders_router,
    notifications_router,
    profile_router,
    subscribe_router,
    users_router,
)
from parley_stage.core.settings import settings
from parley_stage.store import KeyValueStore, create_store

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Parley API",
    description="Two-party direct messaging with live delivery",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(chats_router, prefix="/api/v1")
app.include_router(subscribe_router, prefix="/api/v1")
app.include_router(folders_router, prefix="/api/v1")
app.include_router(profile_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")

app.mount(
    settings.media_base_url,
    StaticFiles(directory=settings.media_root, check_dir=False),
    name="media",
)


@app.on_event("startup")
async def on_startup() -> None:
    Path(settings.media_root).mkdir(parents=True, exist_ok=True)
    app.state.store = create_store()
    logger.info("Parley started with %s store backend", settings.store_backend)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    store: KeyValueStore | None = getattr(app.state, "store", None)
    if store is not None:
        await store.close()
        app.state.store = None


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Parley API",
        "version": settings.app_version,
        "description": "Two-party direct messaging with live delivery",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("parley_stage.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
