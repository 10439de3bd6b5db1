"""User credential store and password hashing."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from mindvault.core.exceptions import ConflictError, StoreError
from mindvault.db.engine import create_session_maker
from mindvault.db.tables import UserRow, utcnow

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72


@dataclass
class UserRecord:
    """User account. ``password_hash`` never leaves the service."""

    id: str
    email: str
    username: str
    password_hash: str
    created_at: datetime

    def public_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "created_at": self.created_at.isoformat(),
        }


def _to_user(row: UserRow) -> UserRecord:
    return UserRecord(
        id=row.id,
        email=row.email,
        username=row.username,
        password_hash=row.password,
        created_at=row.created_at,
    )


async def hash_password(password: str, rounds: int = 10) -> str:
    """Hash a password with bcrypt in a worker thread."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = await asyncio.to_thread(bcrypt.hashpw, password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


async def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return await asyncio.to_thread(
            bcrypt.checkpw, password.encode("utf-8"), password_hash.encode("utf-8")
        )
    except ValueError:
        # Over-long password or a corrupt stored hash
        return False


class CredentialStore:
    """Lookup and create user accounts."""

    def __init__(self, engine: AsyncEngine):
        self._session_maker = create_session_maker(engine)

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(select(UserRow).where(UserRow.email == email))
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError("Failed to look up user", details=str(e)) from e

        return _to_user(row) if row is not None else None

    async def create_user(self, email: str, password_hash: str, username: str) -> UserRecord:
        """Insert a new user.

        Raises:
            ConflictError: a user with this email already exists
            StoreError: any other database failure
        """
        row = UserRow(email=email, password=password_hash, username=username, created_at=utcnow())
        try:
            async with self._session_maker() as session:
                session.add(row)
                await session.commit()
        except IntegrityError as e:
            raise ConflictError("Email is already registered") from e
        except SQLAlchemyError as e:
            raise StoreError("Failed to create user", details=str(e)) from e

        logger.info("User created", extra={"user_id": row.id})
        return _to_user(row)
