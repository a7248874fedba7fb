"""FastAPI app: upload, merge, sessions and health endpoints plus static outputs."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .. import __version__
from ..config import Settings, bootstrap_env, get_settings
from ..errors import RecordingMergeError
from ..factory import (
    listing_service_from_settings,
    merge_service_from_settings,
    segment_store_from_settings,
)
from ..interfaces import Encoder
from ..logging_config import configure_logging
from ..models import ErrorResponse
from .routers import health_router, recordings_router

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()) if x not in ("body", "query"))
        parts.append(f"{loc}: {err.get('msg', 'invalid')}" if loc else err.get("msg", "invalid"))
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI) -> None:
    """Convert every failure into {"ok": false, "error": message}."""

    @app.exception_handler(RecordingMergeError)
    async def recording_merge_error(request: Request, exc: RecordingMergeError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        message = _validation_message(exc)
        logger.info("%s %s invalid request: %s", request.method, request.url.path, message)
        return _error(400, message)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s unexpected error: %s", request.method, request.url.path, exc)
        return _error(500, str(exc) or exc.__class__.__name__)


def create_app(settings: Settings | None = None, *, encoder: Encoder | None = None) -> FastAPI:
    """
    Build the app with its components on app.state.

    Pass settings (e.g. a temporary storage root) and a fake encoder in tests;
    by default settings come from env and the encoder is ffmpeg.
    """
    settings = settings or get_settings()
    root = settings.resolved_storage_root()
    root.mkdir(parents=True, exist_ok=True)

    app = FastAPI(title="Recording Merge", version=__version__)
    app.state.settings = settings
    store = segment_store_from_settings(settings)
    app.state.segment_store = store
    app.state.merge_service = merge_service_from_settings(settings, store, encoder)
    app.state.listing_service = listing_service_from_settings(settings, store)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
        allow_credentials=False,
    )
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(recordings_router)
    # Serve stored segments and renditions for playback
    app.mount(settings.public_prefix, StaticFiles(directory=str(root)), name="uploads")
    logger.info("app ready: storage_root=%s public_prefix=%s", root, settings.public_prefix)
    return app


def app_from_env() -> FastAPI:
    """uvicorn factory: load .env, configure logging, build the app from env."""
    bootstrap_env()
    settings = get_settings()
    configure_logging(settings.log_level)
    return create_app(settings)
