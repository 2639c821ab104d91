"""
FastAPI application for the plastic waste hotspot tracker.

Production deployment configuration via environment variables.
"""

import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from core.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    TrackerError,
    ValidationError,
)
from utils.config import Config
from web.routes import router as api_router


logger = logging.getLogger(__name__)


# =============================================================================
# Environment Configuration
# =============================================================================

# Production mode detection
IS_PRODUCTION = os.getenv("PRODUCTION", "").lower() == "true"

# CORS configuration - locked down for production
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else []
if not ALLOWED_ORIGINS and not IS_PRODUCTION:
    # Development fallback only
    ALLOWED_ORIGINS = ["http://localhost:8000", "http://127.0.0.1:8000"]

VERSION = "0.1.0"


# =============================================================================
# Error Mapping
# =============================================================================

# Most specific first; TrackerError itself is a 400
ERROR_STATUS_CODES = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidStateError, 409),
)


def status_code_for(error: TrackerError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 400


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """Render a core error as a JSON body with its stable code."""
    status_code = status_code_for(exc)
    logger.info("%s %s -> %d %s", request.method, request.url.path, status_code, exc.code)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(config: Config = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or Config.load()

    app = FastAPI(
        title="Plastic Hotspot Tracker",
        description="Collection submissions, moderation and hotspot management",
        version=VERSION,
        # Production settings: disable docs for private deployment
        docs_url=None if IS_PRODUCTION else "/docs",
        redoc_url=None if IS_PRODUCTION else "/redoc",
        openapi_url=None if IS_PRODUCTION else "/openapi.json",
        debug=config.debug and not IS_PRODUCTION,
    )
    app.state.config = config
    app.state.services = None

    # Healthcheck first: no dependencies, no IO
    @app.get("/health", include_in_schema=False)
    def health():
        return {
            "status": "healthy",
            "version": VERSION,
            "environment": "production" if IS_PRODUCTION else "development",
        }

    if ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PATCH", "DELETE"],
            allow_headers=["*"],
        )

    app.add_exception_handler(TrackerError, tracker_error_handler)

    app.include_router(api_router)

    # Evidence images; the directory is created by EvidenceStorage
    app.mount("/uploads", StaticFiles(directory=config.upload_dir, check_dir=False), name="uploads")

    return app


# Create app instance for uvicorn
app = create_app()
