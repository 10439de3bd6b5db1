"""Chunked upload request/response models."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def coerce_user_id(value: Any) -> Optional[str]:
    """Accept numeric or string user ids; treat empty values as anonymous."""
    if value is None or value == "":
        return None
    return str(value)


class InitUploadRequest(BaseModel):
    """Request model for registering a chunked upload."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    user_id: Optional[str] = Field(None, alias="userId")
    total_size: int = Field(..., alias="totalSize")
    chunk_count: int = Field(..., alias="chunkCount")

    @field_validator("user_id", mode="before")
    @classmethod
    def normalize_user_id(cls, value: Any) -> Optional[str]:
        return coerce_user_id(value)


class InitUploadResponse(BaseModel):
    """Response model for upload registration."""

    model_config = ConfigDict(populate_by_name=True)

    upload_id: str = Field(..., alias="uploadId")
    message: str = "Upload session initialized"


class ChunkUploadRequest(BaseModel):
    """Request model for one chunk."""

    model_config = ConfigDict(populate_by_name=True)

    upload_id: str = Field(..., alias="uploadId")
    chunk_index: int = Field(..., alias="chunkIndex")
    chunk_data: str = Field(..., alias="chunkData")


class ChunkUploadResponse(BaseModel):
    """Response model for chunk ingestion progress."""

    model_config = ConfigDict(populate_by_name=True)

    upload_id: str = Field(..., alias="uploadId")
    chunk_index: int = Field(..., alias="chunkIndex")
    received: int
    total: int
    is_complete: bool = Field(..., alias="isComplete")


class CompleteUploadRequest(BaseModel):
    """Request model for completing a chunked upload."""

    model_config = ConfigDict(populate_by_name=True)

    upload_id: str = Field(..., alias="uploadId")
