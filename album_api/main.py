"""
FastAPI Album API application.

Main application entry point that configures:
- API routers
- Database lifecycle
- Discord channel gateway and channel cache
- Logging system
- Exception handlers
- Prometheus metrics
- Graceful shutdown
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from album_api.config import get_settings
from album_api.database import close_db, init_db
from album_api.exceptions import AlbumError
from album_api.middlewares.logging_middleware import LoggingMiddleware
from album_api.middlewares.request_tracking_middleware import (
    RequestTracker,
    RequestTrackingMiddleware,
)
from album_api.routers import albums_router, health_router
from album_api.services.discord import ChannelCache, DiscordChannelGateway
from album_api.utils.logger import get_request_id, log_error, log_info, setup_logging
from album_api.utils.prometheus_metrics import exceptions_total, ready, setup_prometheus

settings = get_settings()
logger = logging.getLogger("album_api")

setup_logging()

request_tracker = RequestTracker()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan.

    Startup: validate production config, create tables, open the Discord
    client and the channel cache.
    Shutdown: fail health checks, wait for in-flight requests (max 30s),
    close the Discord client and the database engine.
    """
    if settings.is_production:
        missing = settings.missing_production_settings()
        if missing:
            error_msg = "Configuration validation failed, missing: " + ", ".join(missing)
            log_error("Startup failed: configuration validation errors", event="lifecycle", error_message=error_msg)
            raise RuntimeError(error_msg)

    await init_db()
    app.state.channel_gateway = DiscordChannelGateway.from_settings(settings)
    app.state.channel_cache = ChannelCache()

    ready.set(1)
    log_info(
        "Application startup completed",
        event="lifecycle",
        version=settings.app_version,
        environment=settings.environment.value,
    )

    yield

    # Health check 즉시 실패 (로드밸런서가 새 요청 차단)
    ready.set(0)
    log_info("Application shutdown initiated", event="lifecycle")

    if await request_tracker.wait_for_requests(timeout=30.0):
        log_info("All requests completed", event="lifecycle")

    await app.state.channel_gateway.aclose()
    await close_db()

    log_info("Graceful shutdown completed", event="lifecycle")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
## Album API

Photo albums backed by Discord channels.

- **Albums**: create, list, view, rename and delete albums
- **Discord**: every album owns a text channel; private albums are hidden
  from everyone except the owner and the worker bot

### Authentication
Listing and viewing work anonymously. Creating needs a Bearer token;
updating and deleting also need the `manage-album` ability.
    """,
    openapi_tags=[
        {"name": "Albums", "description": "Album management"},
        {"name": "Health", "description": "Health checks"},
    ],
    lifespan=lifespan,
)

setup_prometheus(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestTrackingMiddleware, tracker=request_tracker)


@app.exception_handler(AlbumError)
async def album_error_handler(request: Request, exc: AlbumError):
    """Map album errors to their status code with a machine-readable body."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "request_id": get_request_id(),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Unhandled exception handler.

    ERROR 로그를 남기고 Request ID와 함께 500 응답을 반환합니다.
    """
    exceptions_total.inc()
    rid = get_request_id()

    log_error(
        "Unhandled exception occurred",
        exc_info=exc,
        error_type=type(exc).__name__,
        error_message=str(exc),
        http_method=request.method,
        http_path=request.url.path,
        request_id=rid,
        event="exception",
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "request_id": rid,
        },
    )


app.include_router(health_router)
app.include_router(albums_router)


@app.get(
    "/",
    tags=["Root"],
    summary="API information",
)
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }
