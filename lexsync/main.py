"""Main FastAPI application module."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from lexsync.api.v1.router import router as v1_router
from lexsync.broadcast import Broadcaster
from lexsync.content_store import ContentStore
from lexsync.core.config import Settings
from lexsync.core.config import settings as default_settings
from lexsync.core.events import create_start_app_handler, create_stop_app_handler
from lexsync.core.logging import configure_logging
from lexsync.middleware.cache_control import NoCacheMiddleware
from lexsync.middleware.correlation import CorrelationMiddleware
from lexsync.middleware.errors import ErrorHandlingMiddleware, register_error_handlers
from lexsync.middleware.metrics import MetricsMiddleware


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ContentStore] = None,
    broadcaster: Optional[Broadcaster] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use instead of the environment
        store: Pre-built content store; built at startup when omitted
        broadcaster: Pre-built broadcaster; built at startup when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await start_app()
        try:
            yield
        finally:
            await stop_app()

    app = FastAPI(
        title=settings.app_name,
        description="Versioned content store and change feed for the lexicon app",
        version=settings.version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        default_response_class=JSONResponse,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    # Request handlers need a registry even when lifespan does not run
    app.state.broadcaster = broadcaster or (
        Broadcaster(queue_size=settings.BROADCAST_QUEUE_SIZE) if store is not None else None
    )

    start_app = create_start_app_handler(app, settings)
    stop_app = create_stop_app_handler(app)

    # Added inside -> out:
    # 1. Error handling (innermost - handles all errors)
    # 2. Metrics (tracks all requests)
    # 3. Correlation (adds request ID)
    # 4. No-cache headers, also on error responses
    # 5. CORS (outermost)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(CorrelationMiddleware)
    app.add_middleware(NoCacheMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "If-Match", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )
    register_error_handlers(app)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose Prometheus metrics."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(v1_router, prefix=settings.api_prefix)
    return app


configure_logging(
    level=default_settings.LOG_LEVEL, json_logs=default_settings.JSON_LOGS
)
app = create_app()
