"""
Module: main.py
Description: FastAPI application factory for the event relay.

Builds the application with its routes, error handlers and lifespan.
Settings and the QueueClient are created once here and handed to the
handlers through app.state; the lifespan creates the backing store and
runs the lease sweeper for as long as the app is serving.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from event_relay.config.settings import Settings
from event_relay.errors import StoreUnavailable
from event_relay.handlers.events import router as events_router
from event_relay.handlers.inbox import router as inbox_router
from event_relay.message_queue.client import QueueClient
from event_relay.message_queue.sweeper import LeaseSweeper
from event_relay.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def _error_response(status_code: int, message, error_type: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": status_code,
                "message": message,
                "type": error_type
            }
        },
        headers=headers
    )


def create_app(
    settings: Optional[Settings] = None,
    queue_client: Optional[QueueClient] = None
) -> FastAPI:
    """
    Create the event relay application.

    Args:
        settings: Application settings (read from the environment if omitted)
        queue_client: Pre-built client (built from settings if omitted)

    Returns:
        Configured FastAPI application
    """
    settings = settings or Settings()
    configure_logging(settings.log_level)
    queue_client = queue_client or QueueClient.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting event relay",
            version=settings.app_version,
            stage=settings.stage,
            backend=settings.backend
        )
        await queue_client.create()

        sweeper = LeaseSweeper(queue_client, interval=settings.sweep_interval)
        sweeper.start()
        app.state.sweeper = sweeper
        try:
            yield
        finally:
            await sweeper.stop()
            logger.info("Shutting down event relay")

    app = FastAPI(
        title=settings.app_name,
        description="Accepts events over HTTP and relays them into a durable queue",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.queue_client = queue_client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(events_router)
    app.include_router(inbox_router)

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Includes queue depth, which also verifies the backend is reachable.
        """
        try:
            stats = await queue_client.stats()
        except StoreUnavailable as e:
            logger.warning("Health check failed, store unavailable", error=str(e))
            return JSONResponse(
                status_code=503,
                content={
                    "status": "degraded",
                    "message": "Queue backend unavailable",
                    "version": settings.app_version,
                    "environment": settings.stage
                }
            )

        return {
            "status": "ok",
            "message": "Event relay is healthy",
            "version": settings.app_version,
            "environment": settings.stage,
            "backend": settings.backend,
            "queue": stats.model_dump()
        }

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Log HTTP exceptions and return structured error responses."""
        logger.warning(
            "HTTP exception occurred",
            status_code=exc.status_code,
            detail=exc.detail,
            path=request.url.path,
            method=request.method
        )
        return _error_response(
            exc.status_code,
            exc.detail,
            "http_exception",
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report malformed query or path parameters as 400."""
        logger.warning(
            "Request validation failed",
            errors=str(exc.errors()),
            path=request.url.path
        )
        return _error_response(400, "Invalid request parameters", "validation_error")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Log unexpected exceptions and return a generic error response."""
        logger.error(
            "Unhandled exception occurred",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method
        )
        return _error_response(500, "Internal server error", "internal_error")

    return app
