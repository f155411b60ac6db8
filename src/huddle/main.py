# src/huddle/main.py
"""Main entry point for the Huddle application."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from huddle.api.v1 import messages_router, realtime_router
from huddle.api.v1.dependencies import build_presence_router
from huddle.core.logging import configure_logging
from huddle.core.settings import settings
from huddle.realtime import HeartbeatMonitor

# Initialize FastAPI app
app = FastAPI(
    title="Huddle API",
    description="Chat backend with direct messaging and real-time presence",
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
app.include_router(messages_router, prefix="/api/v1")
app.include_router(realtime_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    presence = build_presence_router()
    heartbeat = HeartbeatMonitor(
        presence.registry,
        interval=settings.heartbeat_interval_seconds,
        timeout=settings.heartbeat_timeout_seconds,
    )
    await heartbeat.start()
    app.state.presence_router = presence
    app.state.heartbeat = heartbeat


@app.on_event("shutdown")
async def on_shutdown() -> None:
    heartbeat: HeartbeatMonitor | None = getattr(app.state, "heartbeat", None)
    if heartbeat:
        await heartbeat.stop()
    app.state.heartbeat = None
    app.state.presence_router = None


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
        "websocket": "/api/v1/ws",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("huddle.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
