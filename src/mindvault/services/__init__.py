"""
Upload Session Service

Owns in-flight chunked uploads: registration, chunk ingestion, ordered merge
with JSON validation, persistence through the document store, and expiry of
abandoned sessions.
"""

from mindvault.services.upload_sessions import (
    ChunkProgress,
    CompletedUpload,
    UploadSession,
    UploadSessionManager,
)

__all__ = [
    "ChunkProgress",
    "CompletedUpload",
    "UploadSession",
    "UploadSessionManager",
]
