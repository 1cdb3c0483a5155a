"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    uvicorn src.main:app --reload --port 8091

For production:
    gunicorn src.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .api.routes import health, thumbnails, videos
from .config.settings import Settings, get_settings
from .core.media.locators import LocatorError
from .infrastructure.auth.tokens import AuthError
from .infrastructure.snowflake.repositories.videos import VideoNotFoundError
from .infrastructure.storage.client import StorageError
from .infrastructure.video.processor import ProcessingError

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


def _error_response(status_code: int, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map domain exceptions that escape a route to HTTP responses.

    Routes translate the errors they expect; these handlers are the
    backstop. Server-side failures get a generic message; the real cause
    is logged, never returned.
    """

    @app.exception_handler(VideoNotFoundError)
    async def video_not_found_handler(request: Request, exc: VideoNotFoundError):
        return _error_response(404, "Couldn't find video")

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        return _error_response(401, "Unauthorized")

    @app.exception_handler(ProcessingError)
    async def processing_error_handler(request: Request, exc: ProcessingError):
        logger.error(
            "Unhandled processing error",
            extra={"path": request.url.path, "error": str(exc)},
        )
        return _error_response(500, "Failed to process media")

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(
            "Unhandled storage error",
            extra={"path": request.url.path, "error": str(exc)},
        )
        return _error_response(500, "Failed to access storage")

    @app.exception_handler(LocatorError)
    async def locator_error_handler(request: Request, exc: LocatorError):
        logger.error(
            "Malformed asset locator",
            extra={"path": request.url.path, "error": str(exc)},
        )
        return _error_response(500, "Failed to generate URL for asset access")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all exception handler.

        In production, this prevents stack traces from leaking to clients.
        We log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )
        return _error_response(500, "Internal server error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory.

    Passing settings pins them for every request (tests do this);
    otherwise they come from the environment via get_settings().
    """
    pinned_settings = settings
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.getLogger().setLevel(settings.log_level.upper())
        logger.info(
            "Tubely API starting",
            extra={
                "version": __version__,
                "storage_backend": settings.storage_backend,
                "asset_locator_mode": settings.asset_locator_mode,
                "mock_mode": {
                    "snowflake": settings.snowflake_mock_mode,
                    "video_processor": settings.video_processor_mock_mode,
                },
            }
        )

        missing_fields = settings.validate_required_fields()
        if missing_fields:
            # Reported by /health/ready too; startup continues for local dev
            logger.error(
                "Missing required configuration",
                extra={"missing_fields": missing_fields}
            )

        if settings.storage_backend == "local":
            Path(settings.assets_root).mkdir(parents=True, exist_ok=True)

        yield

        logger.info("Tubely API shutting down")

    app = FastAPI(
        title=settings.api_title,
        version=__version__,
        description="""
        Upload service for video thumbnails and MP4 videos.

        ## Authentication

        Every endpoint under /api requires `Authorization: Bearer <JWT>`.

        ## Workflow

        1. **Create a record**: `POST /api/videos`
        2. **Upload a thumbnail**: `POST /api/thumbnails/{video_id}` (field `thumbnail`)
        3. **Upload the video**: `POST /api/videos/{video_id}` (field `video`, MP4 only)
        4. **Read it back**: `GET /api/videos/{video_id}`
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    if pinned_settings is not None:
        app.dependency_overrides[get_settings] = lambda: pinned_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        videos.router,
        prefix="/api/videos",
        tags=["Videos"],
    )

    app.include_router(
        thumbnails.router,
        prefix="/api/thumbnails",
        tags=["Thumbnails"],
    )

    if settings.storage_backend == "local":
        # Directory is created in lifespan; check_dir=False so import doesn't touch disk
        app.mount(
            "/assets",
            StaticFiles(directory=settings.assets_root, check_dir=False),
            name="assets",
        )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - point at the docs."""
        return {
            "message": "Tubely API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    register_exception_handlers(app)

    logger.info(
        "FastAPI application created",
        extra={"title": settings.api_title, "version": __version__}
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
