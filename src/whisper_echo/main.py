# src/whisper_echo/main.py
"""Main entry point for the whisper-echo application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from whisper_echo.api import (
    chat_router,
    posts_router,
    reactions_router,
    realtime_router,
    users_router,
    whisperwall_router,
)
from whisper_echo.api.errors import install_error_handlers
from whisper_echo.core.logging import configure_logging
from whisper_echo.core.settings import settings
from whisper_echo.services.realtime import RealtimeHub

logger = logging.getLogger(__name__)

API_DESCRIPTION = "Social posting, anonymous WhisperWall, reactions and chat API"

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description=API_DESCRIPTION,
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

install_error_handlers(app)

# Include API routers
app.include_router(posts_router, prefix="/api")
app.include_router(reactions_router, prefix="/api")
app.include_router(whisperwall_router, prefix="/api")
app.include_router(chat_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(realtime_router, prefix="/api")


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    app.state.realtime = RealtimeHub()
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    hub: RealtimeHub | None = getattr(app.state, "realtime", None)
    if hub is not None:
        await hub.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": API_DESCRIPTION,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("whisper_echo.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
