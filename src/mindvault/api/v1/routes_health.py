"""Health check endpoint for Mindvault."""

from fastapi import APIRouter, Depends

from mindvault.api.dependencies import get_settings, get_upload_manager
from mindvault.core.config import Settings
from mindvault.services.upload_sessions import UploadSessionManager

router = APIRouter()


@router.get("/health")
async def health_check(
    app_settings: Settings = Depends(get_settings),
    manager: UploadSessionManager = Depends(get_upload_manager),
) -> dict:
    """Health check endpoint.

    Returns service status, name and version, plus the number of chunked
    uploads currently in flight. Does not touch the database.
    """
    return {
        "status": "ok",
        "service": app_settings.SERVICE_NAME,
        "version": app_settings.SERVICE_VERSION,
        "active_uploads": manager.active_count(),
    }
