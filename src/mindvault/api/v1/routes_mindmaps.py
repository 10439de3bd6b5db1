"""Mindmap save and read routes."""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from mindvault.api.dependencies import get_document_store, get_settings
from mindvault.core.config import Settings
from mindvault.core.exceptions import InternalError, MindvaultError, ValidationError
from mindvault.models.mindmap import SaveMindmapRequest
from mindvault.storage.documents import DocumentStore

router = APIRouter(tags=["mindmaps"])
logger = logging.getLogger(__name__)


@router.post("/save-mindmap", status_code=201)
async def save_mindmap(
    request: SaveMindmapRequest = Body(...),
    store: DocumentStore = Depends(get_document_store),
) -> dict:
    """Save a mindmap sent in a single request."""
    if request.data is None or request.data == "" or not request.name:
        raise ValidationError("Mindmap data and name are required")

    logger.info(
        "Saving mindmap",
        extra={"mindmap_name": request.name, "user_id": request.user_id or "anonymous"},
    )
    try:
        # Compact separators match what browser clients produce with JSON.stringify
        payload = json.dumps(request.data, ensure_ascii=False, separators=(",", ":"))
        record, owner_dropped = await store.insert_with_owner_fallback(
            request.name, payload, request.user_id
        )

    except MindvaultError:
        raise
    except Exception as e:
        logger.error(f"Unexpected error while saving mindmap: {e}", exc_info=True)
        raise InternalError("Internal server error", details=str(e)) from e

    if owner_dropped:
        message = "Mindmap saved (not associated with user)"
    else:
        message = "Mindmap saved to database"
    return {"message": message, "data": [record.summary().to_dict()]}


@router.get("/mindmaps/user/{user_id}")
async def list_user_mindmaps(
    user_id: str,
    store: DocumentStore = Depends(get_document_store),
) -> dict:
    """List one user's mindmaps, newest first."""
    summaries = await store.list_summaries(user_id=user_id)
    return {"mindmaps": [s.to_dict() for s in summaries]}


@router.get("/mindmaps")
async def list_mindmaps(store: DocumentStore = Depends(get_document_store)) -> dict:
    """List all mindmaps, newest first."""
    summaries = await store.list_summaries()
    return {"mindmaps": [s.to_dict() for s in summaries]}


@router.get("/mindmaps/{mindmap_id}/info")
async def get_mindmap_info(
    mindmap_id: int,
    store: DocumentStore = Depends(get_document_store),
) -> dict:
    """Summary plus payload size, so clients can plan range reads."""
    info = await store.get_info(mindmap_id)
    return {"mindmap": info.to_dict()}


@router.get("/mindmaps/{mindmap_id}")
async def get_mindmap(
    mindmap_id: int,
    start: int = Query(0, ge=0),
    chunk_size: Optional[int] = Query(None, alias="chunkSize", gt=0),
    store: DocumentStore = Depends(get_document_store),
    app_settings: Settings = Depends(get_settings),
) -> dict:
    """Read a slice of a mindmap's serialized payload.

    Offsets count characters of the stored text. A start beyond the end
    yields an empty slice.
    """
    size = chunk_size or app_settings.DEFAULT_READ_CHUNK_SIZE
    record = await store.get_full(mindmap_id)

    total = len(record.data)
    chunk_start = min(start, total)
    chunk_end = min(chunk_start + size, total)
    return {
        "mindmap": record.summary().to_dict(),
        "chunk": {
            "start": chunk_start,
            "end": chunk_end,
            "total": total,
            "data": record.data[chunk_start:chunk_end],
        },
    }
