"""Chunked upload API routes."""

import logging

from fastapi import APIRouter, Body, Depends, Request

from mindvault.api.dependencies import get_upload_manager
from mindvault.core.exceptions import InternalError, MindvaultError
from mindvault.core.logging import upload_id_context
from mindvault.models.upload import (
    ChunkUploadRequest,
    ChunkUploadResponse,
    CompleteUploadRequest,
    InitUploadRequest,
    InitUploadResponse,
)
from mindvault.services.upload_sessions import UploadSessionManager

router = APIRouter(tags=["upload"])
logger = logging.getLogger(__name__)


def _bind_upload_id(http_request: Request, upload_id: str) -> None:
    """Expose the upload id to log lines and the error logging middleware."""
    upload_id_context.set(upload_id)
    http_request.state.upload_id = upload_id


@router.post("/upload/init", response_model=InitUploadResponse)
async def init_upload(
    http_request: Request,
    request: InitUploadRequest = Body(...),
    manager: UploadSessionManager = Depends(get_upload_manager),
) -> InitUploadResponse:
    """Register a chunked upload session."""
    try:
        upload_id = manager.register(
            document_name=request.name,
            owner_id=request.user_id,
            total_size=request.total_size,
            chunk_count=request.chunk_count,
        )
        _bind_upload_id(http_request, upload_id)
        return InitUploadResponse(upload_id=upload_id)

    except MindvaultError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during upload init: {e}", exc_info=True)
        raise InternalError("Internal server error", details=str(e)) from e


@router.post("/upload/chunk", response_model=ChunkUploadResponse)
async def upload_chunk(
    http_request: Request,
    request: ChunkUploadRequest = Body(...),
    manager: UploadSessionManager = Depends(get_upload_manager),
) -> ChunkUploadResponse:
    """Store one chunk of a registered upload."""
    _bind_upload_id(http_request, request.upload_id)
    try:
        progress = await manager.ingest_chunk(
            request.upload_id, request.chunk_index, request.chunk_data
        )
        return ChunkUploadResponse(
            upload_id=request.upload_id,
            chunk_index=request.chunk_index,
            received=progress.received,
            total=progress.total,
            is_complete=progress.is_complete,
        )

    except MindvaultError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during chunk upload: {e}", exc_info=True)
        raise InternalError("Internal server error", details=str(e)) from e


@router.post("/upload/complete", status_code=201)
async def complete_upload(
    http_request: Request,
    request: CompleteUploadRequest = Body(...),
    manager: UploadSessionManager = Depends(get_upload_manager),
) -> dict:
    """Merge the received chunks and persist the mindmap."""
    _bind_upload_id(http_request, request.upload_id)
    try:
        result = await manager.complete(request.upload_id)

    except MindvaultError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during upload completion: {e}", exc_info=True)
        raise InternalError("Internal server error", details=str(e)) from e

    if result.owner_dropped:
        message = "Mindmap saved (not associated with user)"
    else:
        message = "Mindmap saved to database"
    return {"message": message, "data": [result.record.summary().to_dict()]}
