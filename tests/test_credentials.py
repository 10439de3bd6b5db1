"""Tests for the credential store and password hashing."""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from mindvault.core.exceptions import ConflictError
from mindvault.db.tables import Base
from mindvault.storage.credentials import CredentialStore, hash_password, verify_password


@pytest_asyncio.fixture
async def credential_store():
    """Credential store over a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield CredentialStore(engine)
    await engine.dispose()


@pytest.mark.asyncio
async def test_hash_and_verify_password():
    """Test hash and verify password."""
    password_hash = await hash_password("correct horse", rounds=4)

    assert password_hash != "correct horse"
    assert password_hash.startswith("$2")
    assert await verify_password("correct horse", password_hash)
    assert not await verify_password("wrong horse", password_hash)


@pytest.mark.asyncio
async def test_hash_is_salted():
    """Test hash is salted."""
    first = await hash_password("same", rounds=4)
    second = await hash_password("same", rounds=4)
    assert first != second


@pytest.mark.asyncio
async def test_verify_against_corrupt_hash_fails():
    """Test verify against corrupt hash fails."""
    assert not await verify_password("secret", "not-a-bcrypt-hash")


@pytest.mark.asyncio
async def test_create_and_find_user(credential_store):
    """Test create and find user."""
    user = await credential_store.create_user("ada@example.com", "$2b$04$hash", "ada")

    found = await credential_store.find_by_email("ada@example.com")
    assert found is not None
    assert found.id == user.id
    assert found.username == "ada"
    assert found.password_hash == "$2b$04$hash"


@pytest.mark.asyncio
async def test_find_unknown_email(credential_store):
    """Test find unknown email."""
    assert await credential_store.find_by_email("nobody@example.com") is None


@pytest.mark.asyncio
async def test_duplicate_email_conflicts(credential_store):
    """Test duplicate email conflicts."""
    await credential_store.create_user("ada@example.com", "h1", "ada")

    with pytest.raises(ConflictError) as exc_info:
        await credential_store.create_user("ada@example.com", "h2", "ada2")
    assert exc_info.value.status_code == 409


def test_public_dict_omits_password_hash():
    """Test public dict omits password hash."""
    from datetime import datetime, timezone

    from mindvault.storage.credentials import UserRecord

    user = UserRecord(
        id="u1",
        email="ada@example.com",
        username="ada",
        password_hash="$2b$10$secret",
        created_at=datetime.now(timezone.utc),
    )
    body = user.public_dict()
    assert "password" not in body
    assert "password_hash" not in body
    assert body["email"] == "ada@example.com"
