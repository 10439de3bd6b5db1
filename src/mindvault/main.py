"""Main application entrypoint for Mindvault."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from mindvault.api.middleware import HTTPErrorLoggingMiddleware
from mindvault.api.v1 import routes_health
from mindvault.api.v1.routes_auth import router as auth_router
from mindvault.api.v1.routes_mindmaps import router as mindmaps_router
from mindvault.api.v1.routes_upload import router as upload_router
from mindvault.core.config import Settings, settings
from mindvault.core.exceptions import MindvaultError
from mindvault.core.logging import setup_logging
from mindvault.db.engine import create_engine
from mindvault.services.upload_sessions import UploadSessionManager
from mindvault.storage.credentials import CredentialStore
from mindvault.storage.documents import DocumentStore

logger = logging.getLogger(__name__)


async def mindvault_error_handler(request: Request, exc: MindvaultError) -> JSONResponse:
    """Render taxonomy errors as ``{error, details?}`` with their status."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or ill-typed request fields are a 400, not FastAPI's 422."""
    problems = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": "; ".join(problems)},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The upload session manager and both stores are built here and hung on
    ``app.state``; routes reach them through dependencies.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app_settings = app_settings or settings

    # Initialize logging first
    setup_logging(app_settings)

    engine = create_engine(app_settings)
    document_store = DocumentStore(engine)
    credential_store = CredentialStore(engine)
    upload_manager = UploadSessionManager.from_settings(document_store, app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await document_store.init_schema()
        upload_manager.start_reaper(app_settings.UPLOAD_SWEEP_INTERVAL_SECONDS)
        logger.info(
            "Mindvault started",
            extra={
                "environment": app_settings.ENV,
                "session_ttl_seconds": app_settings.UPLOAD_SESSION_TTL_SECONDS,
            },
        )
        try:
            yield
        finally:
            await upload_manager.stop_reaper()
            await document_store.dispose()
            logger.info(
                "Mindvault shutting down",
                extra={"abandoned_uploads": upload_manager.active_count()},
            )

    app = FastAPI(
        title=app_settings.SERVICE_NAME,
        version=app_settings.SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.document_store = document_store
    app.state.credential_store = credential_store
    app.state.upload_manager = upload_manager

    app.add_middleware(HTTPErrorLoggingMiddleware)
    app.add_exception_handler(MindvaultError, mindvault_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Register routers
    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router, prefix=app_settings.API_PREFIX)
    app.include_router(mindmaps_router, prefix=app_settings.API_PREFIX)
    app.include_router(auth_router, prefix=app_settings.API_PREFIX)

    # Front-end bundle, mounted last so API routes take precedence
    if app_settings.STATIC_DIR:
        static_dir = Path(app_settings.STATIC_DIR)
        if static_dir.is_dir():
            app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        else:
            logger.warning(f"STATIC_DIR {static_dir} does not exist, static serving disabled")

    return app


# Export app instance for ASGI servers
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
