"""
FastAPI application entry point.

Routes:
  /api/upload: relay an upload, returns the public URL
  /file/{id}: public object retrieval (metadata, preview, bytes)
  /api/api-keys: operator API key management
  /api/stats: operator usage statistics
  /api/auth: operator login
  /api/health: store connectivity
  /metrics: Prometheus metrics
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from redis.asyncio import Redis
from starlette.exceptions import HTTPException as StarletteHTTPException

from mediarelay.api import files
from mediarelay.api.router import api_router
from mediarelay.config import Settings, settings as default_settings
from mediarelay.middleware.cors_middleware import CORS_HEADERS, CORSHeadersMiddleware
from mediarelay.middleware.metrics_middleware import MetricsMiddleware
from mediarelay.state import build_services
from mediarelay.utils.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    - Startup: configure structured logging
    - Shutdown: close the relay HTTP pool and the store connection
    """
    configure_logging('mediarelay-api', app.state.services.settings.log_level)
    logger.info("Media relay API started")

    yield

    await app.state.services.aclose()
    logger.info("Media relay API stopped")


def _error_response(message, status_code: int, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers={**(headers or {}), **CORS_HEADERS},
    )


def create_app(
    settings: Optional[Settings] = None,
    kv_client: Optional[Redis] = None,
    http_client: Optional[httpx.AsyncClient] = None
) -> FastAPI:
    """
    Build the application and wire every component from one Settings.

    Args:
        settings: Application settings (module default when omitted)
        kv_client: Redis client to use instead of one built from REDIS_URL
        http_client: httpx client for the upstream relay
    """
    settings = settings or default_settings

    app = FastAPI(
        title="Media Relay API",
        description="Upload relay with rate limiting, API keys and usage accounting",
        version="0.1.0",
        lifespan=lifespan
    )
    app.state.services = build_services(settings, kv_client=kv_client, http_client=http_client)

    # Metrics first so CORS wraps it and preflights are not counted
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CORSHeadersMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.detail, exc.status_code, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.info(f"Invalid request payload on {request.url.path}: {exc.errors()}")
        return _error_response("Invalid request payload", 400)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error_response("Internal server error", 500)

    app.include_router(api_router, prefix="/api")
    app.include_router(files.router, prefix="/file", tags=["files"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "Media Relay API",
            "version": "0.1.0",
            "environment": settings.environment
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    return app


app = create_app()
