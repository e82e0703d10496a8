# src/gamebox/main.py
"""Main entry point for the Gamebox application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from gamebox import __version__
from gamebox.api.v1 import ROUTERS
from gamebox.core.settings import settings
from gamebox.db.session import create_tables
from gamebox.services.igdb import get_igdb_client

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("gamebox")

# Initialize FastAPI app
app = FastAPI(
    title="Gamebox API",
    description="Social network for games: reviews, libraries and a feed",
    version=__version__,
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
for router in ROUTERS:
    app.include_router(router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    create_tables()
    if not settings.igdb_configured:
        logger.warning("IGDB credentials missing; catalogue search and maintenance are disabled")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_igdb_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("gamebox.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
