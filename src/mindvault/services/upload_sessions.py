"""Chunked upload session manager.

Clients that cannot send a mindmap in one request register an upload session,
send the serialized JSON in numbered chunks (in any order, retrying any chunk
as often as needed), then ask for completion. Completion concatenates the
chunks in index order, checks that the result parses as JSON and persists it
through the document store exactly once.

Sessions live in memory, owned by one ``UploadSessionManager`` per
application. Each session carries an ``asyncio.Lock``; chunk ingestion and
completion hold it, and re-check registration after acquiring it, so a chunk
can never land in a session that is being merged and two completions can
never both persist. Abandoned sessions are discarded by a background reaper
once they outlive the configured TTL.
"""

import asyncio
import contextlib
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from uuid import uuid4

from mindvault.core.config import Settings
from mindvault.core.exceptions import (
    IncompleteUploadError,
    InvalidChunkIndexError,
    MalformedPayloadError,
    SessionNotFoundError,
    ValidationError,
)
from mindvault.storage.documents import DocumentStore, MindmapRecord

logger = logging.getLogger(__name__)


@dataclass
class UploadSession:
    """In-progress chunked upload.

    Chunks are kept sparse by index, so a large declared chunk count costs
    nothing until data arrives.
    """

    session_id: str
    document_name: str
    owner_id: Optional[str]
    total_size: int
    chunk_count: int
    created_at: datetime
    chunks: Dict[int, str] = field(default_factory=dict)
    received_bytes: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def received(self) -> int:
        return len(self.chunks)

    @property
    def is_complete(self) -> bool:
        return self.received == self.chunk_count

    def missing_indices(self, limit: int = 20) -> list[int]:
        missing = []
        for index in range(self.chunk_count):
            if index not in self.chunks:
                missing.append(index)
                if len(missing) >= limit:
                    break
        return missing

    def merge(self) -> str:
        """Concatenate chunks in index order."""
        return "".join(self.chunks.get(i, "") for i in range(self.chunk_count))


@dataclass
class ChunkProgress:
    """Result of ingesting one chunk."""

    received: int
    total: int
    is_complete: bool


@dataclass
class CompletedUpload:
    """Persisted result of a completed session."""

    record: MindmapRecord
    owner_dropped: bool = False


class UploadSessionManager:
    """Registry of in-flight chunked uploads."""

    def __init__(
        self,
        document_store: DocumentStore,
        max_upload_bytes: int,
        session_ttl_seconds: int = 3600,
        enforce_total_size: bool = False,
        max_chunk_count: int = 10_000,
    ):
        self._document_store = document_store
        self._max_upload_bytes = max_upload_bytes
        self._max_chunk_count = max_chunk_count
        self._session_ttl = timedelta(seconds=session_ttl_seconds)
        self._enforce_total_size = enforce_total_size
        self._sessions: Dict[str, UploadSession] = {}
        self._reaper_task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, document_store: DocumentStore, app_settings: Settings) -> "UploadSessionManager":
        return cls(
            document_store,
            max_upload_bytes=app_settings.max_upload_bytes,
            session_ttl_seconds=app_settings.UPLOAD_SESSION_TTL_SECONDS,
            enforce_total_size=app_settings.UPLOAD_ENFORCE_TOTAL_SIZE,
            max_chunk_count=app_settings.MAX_UPLOAD_CHUNKS,
        )

    def get(self, session_id: str) -> Optional[UploadSession]:
        """Retrieve a live session by id."""
        return self._sessions.get(session_id)

    def active_count(self) -> int:
        return len(self._sessions)

    def _new_session_id(self) -> str:
        # Millisecond prefix + random suffix, never reusing a live id
        while True:
            candidate = f"{int(time.time() * 1000)}{uuid4().hex[:12]}"
            if candidate not in self._sessions:
                return candidate

    def _require(self, session_id: str) -> UploadSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError("Upload session does not exist", details=f"uploadId={session_id}")
        return session

    def _ensure_live(self, session: UploadSession) -> None:
        """Fail if the session was completed or reaped while we waited for its lock."""
        if self._sessions.get(session.session_id) is not session:
            raise SessionNotFoundError(
                "Upload session does not exist", details=f"uploadId={session.session_id}"
            )

    def register(
        self,
        document_name: str,
        owner_id: Optional[str],
        total_size: int,
        chunk_count: int,
    ) -> str:
        """Register a new upload session.

        Args:
            document_name: Name copied into the persisted mindmap
            owner_id: Optional user to associate with the mindmap
            total_size: Declared UTF-8 byte length of the merged payload
            chunk_count: Number of chunks the client will send

        Returns:
            The new session id

        Raises:
            ValidationError: on a blank name, a chunk count outside
                [1, max_chunk_count], or a negative or oversized total size
        """
        if not document_name or not document_name.strip():
            raise ValidationError("name is required")
        if chunk_count < 1:
            raise ValidationError("chunkCount must be at least 1", details=f"chunkCount={chunk_count}")
        if chunk_count > self._max_chunk_count:
            raise ValidationError(
                "chunkCount exceeds maximum allowed chunks",
                details=f"chunkCount={chunk_count}, limit={self._max_chunk_count}",
            )
        if total_size < 0:
            raise ValidationError("totalSize must not be negative", details=f"totalSize={total_size}")
        if total_size > self._max_upload_bytes:
            raise ValidationError(
                "Upload exceeds maximum allowed size",
                details=f"totalSize={total_size}, limit={self._max_upload_bytes}",
            )

        session_id = self._new_session_id()
        self._sessions[session_id] = UploadSession(
            session_id=session_id,
            document_name=document_name,
            owner_id=owner_id or None,
            total_size=total_size,
            chunk_count=chunk_count,
            created_at=datetime.now(timezone.utc),
        )

        logger.info(
            "Upload session registered",
            extra={
                "upload_id": session_id,
                "chunk_count": chunk_count,
                "total_size": total_size,
                "user_id": owner_id,
            },
        )
        return session_id

    async def ingest_chunk(self, session_id: str, chunk_index: int, chunk_payload: str) -> ChunkProgress:
        """Store one chunk. Re-sending an index replaces the earlier payload.

        Raises:
            SessionNotFoundError: unknown, completed or expired session
            InvalidChunkIndexError: index outside [0, chunk_count)
            ValidationError: received bytes would exceed the upload limit
        """
        session = self._require(session_id)
        async with session.lock:
            self._ensure_live(session)
            if not 0 <= chunk_index < session.chunk_count:
                raise InvalidChunkIndexError(
                    "Invalid chunk index",
                    details=f"chunkIndex must be between 0 and {session.chunk_count - 1}, got {chunk_index}",
                )

            chunk_bytes = len(chunk_payload.encode("utf-8"))
            replaced = session.chunks.get(chunk_index)
            replaced_bytes = len(replaced.encode("utf-8")) if replaced is not None else 0
            received_bytes = session.received_bytes - replaced_bytes + chunk_bytes
            if received_bytes > self._max_upload_bytes:
                raise ValidationError(
                    "Upload exceeds maximum allowed size",
                    details=f"received {received_bytes} bytes, limit={self._max_upload_bytes}",
                )

            session.chunks[chunk_index] = chunk_payload
            session.received_bytes = received_bytes
            progress = ChunkProgress(
                received=session.received,
                total=session.chunk_count,
                is_complete=session.is_complete,
            )

        logger.debug(
            "Chunk received",
            extra={
                "upload_id": session_id,
                "chunk_index": chunk_index,
                "chunk_length": len(chunk_payload),
                "received": progress.received,
                "total": progress.total,
            },
        )
        return progress

    async def complete(self, session_id: str) -> CompletedUpload:
        """Merge, validate and persist a fully received session.

        The session is removed only after the record is persisted. Any failure
        leaves it in place.

        Raises:
            SessionNotFoundError: unknown, completed or expired session
            IncompleteUploadError: not every chunk index has been received
            MalformedPayloadError: merged text is empty or not JSON
            ValidationError: merged size differs from totalSize while enforced
            AuthorizationFallbackError, StoreError: persistence failed
        """
        session = self._require(session_id)
        async with session.lock:
            self._ensure_live(session)
            if not session.is_complete:
                missing = session.missing_indices()
                raise IncompleteUploadError(
                    "Not all chunks have been received",
                    details=f"received {session.received}/{session.chunk_count}, missing {missing}",
                )

            merged = session.merge()
            await self._validate_payload(session, merged)

            record, owner_dropped = await self._document_store.insert_with_owner_fallback(
                session.document_name, merged, session.owner_id
            )
            del self._sessions[session_id]

        logger.info(
            "Upload session completed",
            extra={
                "upload_id": session_id,
                "mindmap_id": record.id,
                "data_length": len(merged),
                "owner_dropped": owner_dropped,
            },
        )
        return CompletedUpload(record=record, owner_dropped=owner_dropped)

    async def _validate_payload(self, session: UploadSession, merged: str) -> None:
        size_bytes = len(merged.encode("utf-8"))
        if not merged:
            raise MalformedPayloadError(
                "Uploaded data is empty",
                details="Merged payload is empty",
                data_length=0,
            )

        try:
            # Large payloads take a while to parse, keep the event loop free
            await asyncio.to_thread(json.loads, merged)
        except json.JSONDecodeError as e:
            logger.warning(
                "Merged upload is not valid JSON",
                extra={"upload_id": session.session_id, "data_length": size_bytes, "error": str(e)},
            )
            raise MalformedPayloadError(
                "Invalid JSON data",
                details=str(e),
                data_length=size_bytes,
            ) from e

        if size_bytes != session.total_size:
            if self._enforce_total_size:
                raise ValidationError(
                    "Merged size does not match totalSize",
                    details=f"expected {session.total_size} bytes, got {size_bytes}",
                )
            logger.warning(
                "Merged size differs from declared totalSize",
                extra={
                    "upload_id": session.session_id,
                    "total_size": session.total_size,
                    "data_length": size_bytes,
                },
            )

    def sweep_expired(self, now: datetime | None = None) -> list[str]:
        """Discard sessions older than the TTL, whatever their state.

        Sessions whose lock is held (a chunk or completion in flight) are left
        for the next sweep.

        Returns:
            Ids of the discarded sessions
        """
        now = now or datetime.now(timezone.utc)
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.created_at >= self._session_ttl and not session.lock.locked()
        ]
        for session_id in expired:
            session = self._sessions.pop(session_id)
            logger.warning(
                "Upload session abandoned, discarding",
                extra={
                    "upload_id": session_id,
                    "received": session.received,
                    "total": session.chunk_count,
                    "age_seconds": int((now - session.created_at).total_seconds()),
                },
            )
        return expired

    def start_reaper(self, interval_seconds: float) -> None:
        """Start the background sweep task on the running loop."""
        if self._reaper_task is not None and not self._reaper_task.done():
            return
        self._reaper_task = asyncio.create_task(self._reap_forever(interval_seconds))

    async def stop_reaper(self) -> None:
        task = self._reaper_task
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._reaper_task = None

    async def _reap_forever(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                self.sweep_expired()
            except Exception:
                logger.error("Upload session sweep failed", exc_info=True)
