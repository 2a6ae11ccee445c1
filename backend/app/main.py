"""
Pilgrim Realtime Backend - Main Application

This is the entry point for the ASGI application.
It handles:
- Socket.IO realtime channel (presence, groups, SOS, call signaling)
- REST API endpoints (call history, SOS injection)
- Background tasks for ringing-call expiry
"""
from contextlib import asynccontextmanager
import asyncio
import logging
from datetime import datetime, UTC

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import router as api_router
from app.api.websocket import room_registry, sio
from app.config.firebase import get_firebase_app
from app.config.redis import get_redis, close_redis
from app.config.settings import settings
from app.models.database import init_db
from app.services.call import call_record_store, ring_timeout_watchdog
from app.services.status_service import status_service

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # === STARTUP ===
    logger.info("🚀 Starting Pilgrim Realtime Backend...")

    await init_db()
    logger.info("✅ Database tables created")

    await get_redis()
    logger.info("✅ Redis connected")

    if get_firebase_app() is not None:
        logger.info("✅ Firebase initialized")
    else:
        logger.warning("⚠️ Firebase credentials not configured, push notifications disabled")

    watchdog = None
    if settings.CALL_RING_TIMEOUT_SEC > 0:
        watchdog = asyncio.create_task(ring_timeout_watchdog(
            call_record_store,
            settings.CALL_RING_TIMEOUT_SEC,
            settings.CALL_RING_SWEEP_INTERVAL_SEC,
        ))
        logger.info("✅ Ring timeout watchdog started")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("🛑 Shutting down...")
    if watchdog is not None:
        watchdog.cancel()
        try:
            await watchdog
        except asyncio.CancelledError:
            pass
    await close_redis()


app = FastAPI(
    title="Pilgrim Realtime Backend",
    description="Presence, group rooms, SOS and call signaling for the pilgrimage app",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Realtime accessors for REST handlers
app.state.realtime = room_registry
app.state.presence = status_service

# Include REST API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Pilgrim Realtime Backend",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    registry = app.state.realtime
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "total_connections": registry.get_total_connections(),
        "registered_users": registry.get_registered_user_count(),
        "rooms": registry.get_room_count(),
        "presence_cache": await app.state.presence.cache_available(),
    }


# Socket.IO wraps the FastAPI app; serve with `uvicorn app.main:asgi_app`
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app, socketio_path=settings.SOCKETIO_PATH)
