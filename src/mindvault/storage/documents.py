"""Mindmap document store over the relational database."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from mindvault.core.exceptions import (
    AuthorizationFallbackError,
    DocumentNotFoundError,
    PolicyViolationError,
    StoreError,
)
from mindvault.db.engine import create_session_maker
from mindvault.db.tables import Base, MindmapRow, utcnow

logger = logging.getLogger(__name__)

# Postgres insufficient_privilege, raised for row-level security rejections
POLICY_VIOLATION_SQLSTATE = "42501"


@dataclass
class MindmapSummary:
    """Listing view of a mindmap record."""

    id: int
    name: str
    created_at: datetime
    user_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "user_id": self.user_id,
        }


@dataclass
class MindmapRecord(MindmapSummary):
    """Full mindmap record including the serialized payload."""

    data: str = ""

    def summary(self) -> MindmapSummary:
        return MindmapSummary(
            id=self.id, name=self.name, created_at=self.created_at, user_id=self.user_id
        )


@dataclass
class MindmapInfo(MindmapSummary):
    """Summary plus payload length, for clients planning range reads."""

    size: int = 0

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["size"] = self.size
        return body


def _sqlstate(exc: DBAPIError) -> str | None:
    """Extract the SQLSTATE from a wrapped driver error.

    asyncpg errors surface through SQLAlchemy's adapter with ``sqlstate`` or
    ``pgcode``; the raw driver exception is kept as the adapter's cause.
    """
    candidates = [exc.orig, getattr(exc.orig, "__cause__", None)]
    for candidate in candidates:
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def is_policy_violation(exc: BaseException) -> bool:
    """Whether a database error is an ownership/row-level policy rejection."""
    return isinstance(exc, DBAPIError) and _sqlstate(exc) == POLICY_VIOLATION_SQLSTATE


def _to_record(row: MindmapRow) -> MindmapRecord:
    return MindmapRecord(
        id=row.id,
        name=row.name,
        created_at=row.created_at,
        user_id=row.user_id,
        data=row.data,
    )


class DocumentStore:
    """Create and query mindmap records."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_maker: async_sessionmaker[AsyncSession] = create_session_maker(engine)

    async def init_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def insert(self, name: str, data: str, user_id: Optional[str]) -> MindmapRecord:
        """Persist a new mindmap record.

        Raises:
            PolicyViolationError: the store rejected the row on ownership grounds
            StoreError: any other database failure
        """
        row = MindmapRow(name=name, data=data, user_id=user_id, created_at=utcnow())
        try:
            async with self._session_maker() as session:
                session.add(row)
                await session.commit()
        except DBAPIError as e:
            if is_policy_violation(e):
                raise PolicyViolationError(
                    "Row rejected by ownership policy", details=str(e.orig)
                ) from e
            raise StoreError("Failed to save mindmap", details=str(e.orig)) from e
        except SQLAlchemyError as e:
            raise StoreError("Failed to save mindmap", details=str(e)) from e

        return _to_record(row)

    async def insert_with_owner_fallback(
        self, name: str, data: str, user_id: Optional[str]
    ) -> tuple[MindmapRecord, bool]:
        """Persist a record, retrying once without the owner on a policy rejection.

        Returns:
            The persisted record and whether the owner association was dropped

        Raises:
            AuthorizationFallbackError: the policy rejected the row and the
                ownerless retry (if any) failed too
            StoreError: non-policy database failure on the first attempt
        """
        try:
            return await self.insert(name, data, user_id), False
        except PolicyViolationError as e:
            if not user_id:
                raise AuthorizationFallbackError(
                    "Save failed: check your login state or database permissions",
                    details=e.details,
                ) from e
            logger.warning(
                "Ownership policy rejected mindmap, retrying without user",
                extra={"mindmap_name": name, "user_id": user_id},
            )

        try:
            record = await self.insert(name, data, None)
        except (PolicyViolationError, StoreError) as retry_error:
            logger.error(
                "Saving mindmap without user failed",
                extra={"mindmap_name": name, "error": retry_error.message},
            )
            raise AuthorizationFallbackError(
                "Save failed: check your login state or database permissions",
                details=retry_error.details or retry_error.message,
            ) from retry_error

        return record, True

    async def list_summaries(self, user_id: Optional[str] = None) -> list[MindmapSummary]:
        """List summaries newest first, optionally for one user."""
        stmt = select(
            MindmapRow.id, MindmapRow.name, MindmapRow.created_at, MindmapRow.user_id
        ).order_by(MindmapRow.created_at.desc(), MindmapRow.id.desc())
        if user_id is not None:
            stmt = stmt.where(MindmapRow.user_id == user_id)

        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except SQLAlchemyError as e:
            raise StoreError("Failed to list mindmaps", details=str(e)) from e

        return [
            MindmapSummary(id=r.id, name=r.name, created_at=r.created_at, user_id=r.user_id)
            for r in rows
        ]

    async def get_full(self, mindmap_id: int) -> MindmapRecord:
        """Fetch a record with its payload.

        Raises:
            DocumentNotFoundError: if no record with this id exists.
        """
        try:
            async with self._session_maker() as session:
                row = await session.get(MindmapRow, mindmap_id)
        except SQLAlchemyError as e:
            raise StoreError("Failed to load mindmap", details=str(e)) from e

        if row is None:
            raise DocumentNotFoundError(f"Mindmap {mindmap_id} not found")
        return _to_record(row)

    async def get_info(self, mindmap_id: int) -> MindmapInfo:
        """Fetch a summary and the payload length without loading the payload."""
        stmt = select(
            MindmapRow.id,
            MindmapRow.name,
            MindmapRow.created_at,
            MindmapRow.user_id,
            func.length(MindmapRow.data).label("size"),
        ).where(MindmapRow.id == mindmap_id)

        try:
            async with self._session_maker() as session:
                row = (await session.execute(stmt)).first()
        except SQLAlchemyError as e:
            raise StoreError("Failed to load mindmap info", details=str(e)) from e

        if row is None:
            raise DocumentNotFoundError(f"Mindmap {mindmap_id} not found")
        return MindmapInfo(
            id=row.id,
            name=row.name,
            created_at=row.created_at,
            user_id=row.user_id,
            size=row.size or 0,
        )
