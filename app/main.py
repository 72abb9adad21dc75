"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.api.common.auth_router import router as auth_router
from app.api.v1.chat_router import router as chat_router
from app.api.v1.presence_router import router as presence_router
from app.api.v1.realtime_router import router as realtime_router
from app.api.v1.settings_router import router as settings_router
from app.core.config import settings
from app.core.database import Base, engine
from app.core.exceptions import (
    AppException,
    app_exception_handler,
    validation_exception_handler,
)
from app.core.middleware import AuthMiddleware
from app.core.rate_limit import limiter, rate_limit_exceeded_handler
from app.core.redis import close_redis, init_redis
from app.realtime.connection_hub import ConnectionHub
from app.schemas.response_schema import ApiResponse, success_response
from app.services.idle_chat_monitor import IdleChatMonitor
from app.services.presence_monitor import PresenceMonitor
from app.services.presence_tracker import PresenceTracker

logger = structlog.get_logger()

# Process-local real-time state, shared by the hub, services and workers
presence_tracker = PresenceTracker()
connection_hub = ConnectionHub(presence_tracker)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info(
        "Starting application",
        app_name=settings.app.name,
        environment=settings.app.env,
    )
    await init_redis()
    if settings.app.is_development:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    workers = [
        PresenceMonitor(
            presence_tracker,
            connection_hub,
            settings.presence.sweep_interval_seconds,
        ),
        IdleChatMonitor(connection_hub, settings.chat.idle_sweep_interval_seconds),
    ]
    for worker in workers:
        worker.start()
    yield
    for worker in workers:
        await worker.stop()
    await close_redis()
    await engine.dispose()
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.app.name,
    description="Live chat between end users and support admins",
    version=settings.app.version,
    lifespan=lifespan,
    debug=settings.app.debug,
)

app.state.limiter = limiter
app.state.presence_tracker = presence_tracker
app.state.connection_hub = connection_hub

# Exception handlers
app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

# Middleware (registration order: inner→outer, execution order: outer→inner)
app.add_middleware(AuthMiddleware)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=(
        ["*"] if settings.app.is_development else settings.server.cors_origins_list
    ),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", response_model=ApiResponse[dict])
async def health_check() -> dict:
    """Health check endpoint."""
    return success_response({"status": "healthy"})


@app.get("/", response_model=ApiResponse[dict])
async def root() -> dict:
    """Root endpoint."""
    return success_response(
        {
            "app": settings.app.name,
            "version": settings.app.version,
            "docs": "/docs",
        }
    )


# Register routers
app.include_router(auth_router)
app.include_router(chat_router)
app.include_router(settings_router)
app.include_router(presence_router)
app.include_router(realtime_router)
