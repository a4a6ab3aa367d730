"""
ShadowTalk FastAPI backend entry point.

REST routes under /api carry every durable write; the single /ws endpoint
carries the realtime fan-out (room channels, DM push, voice signaling).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shadowtalk.api import auth, dms, health, messages, rooms
from shadowtalk.api.presence import bulk_router
from shadowtalk.api.presence import router as presence_router
from shadowtalk.api.voice import router as voice_router
from shadowtalk.config import settings
from shadowtalk.database import create_tables
from shadowtalk.redis.client import close_redis, init_redis
from shadowtalk.services.rate_limiter import RateLimits
from shadowtalk.websocket.dispatcher import RealtimeDispatcher
from shadowtalk.websocket.handlers import realtime_ws_handler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_redis()
    if settings.CREATE_TABLES_ON_STARTUP:
        create_tables()
    app.state.realtime = RealtimeDispatcher()
    app.state.rate_limits = RateLimits.from_settings()
    logger.info("ShadowTalk realtime core started")
    yield
    await app.state.realtime.shutdown()
    await close_redis()


app = FastAPI(
    title="ShadowTalk",
    description="Anonymous chat rooms, direct messages and voice",
    version="1.0.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
# allow_origins=["*"] cannot be combined with allow_credentials=True, so a
# wildcard entry becomes allow_origin_regex=".*".
_cors_origins = [o for o in settings.CORS_ORIGINS if o != "*"]
_cors_regex = ".*" if len(_cors_origins) < len(settings.CORS_ORIGINS) else None

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_origin_regex=_cors_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(health.router)
app.include_router(auth.router, prefix="/api")
app.include_router(rooms.router, prefix="/api")
app.include_router(voice_router, prefix="/api")
app.include_router(messages.router, prefix="/api")
app.include_router(dms.router, prefix="/api")
app.include_router(presence_router, prefix="/api")
app.include_router(bulk_router, prefix="/api")

# ---------------------------------------------------------------------------
# WebSocket endpoint
# ---------------------------------------------------------------------------


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await realtime_ws_handler(websocket, websocket.app.state.realtime)


# ---------------------------------------------------------------------------
# Custom exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})
