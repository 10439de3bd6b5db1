"""Pytest configuration and shared fixtures."""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from mindvault.core.config import Settings
from mindvault.core.exceptions import PolicyViolationError
from mindvault.storage.documents import DocumentStore, MindmapRecord


def build_settings(**overrides) -> Settings:
    """Settings for an isolated in-memory database."""
    values = {
        "ENV": "test",
        "LOG_LEVEL": "DEBUG",
        "DATABASE_URL": "sqlite+aiosqlite://",
        "BCRYPT_ROUNDS": 4,
        "UPLOAD_SWEEP_INTERVAL_SECONDS": 3600,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def test_settings():
    return build_settings()


@pytest.fixture
def client(test_settings):
    """Test client with lifespan, so tables exist and the reaper runs."""
    from mindvault.main import create_app

    with TestClient(create_app(test_settings)) as test_client:
        yield test_client


class FakeDocumentStore(DocumentStore):
    """In-memory stand-in for DocumentStore.

    Only ``insert`` is replaced; the owner fallback policy runs unchanged.
    ``policy_rejects_owned`` rejects rows carrying a user_id the way a
    row-level security policy would, ``reject_all`` rejects every row and
    ``insert_delay`` slows persistence so tests can interleave requests.
    """

    def __init__(self, policy_rejects_owned=False, reject_all=False, insert_delay=0.0):
        self.policy_rejects_owned = policy_rejects_owned
        self.reject_all = reject_all
        self.insert_delay = insert_delay
        self.records: list[MindmapRecord] = []
        self.insert_calls: list[Optional[str]] = []

    async def insert(self, name, data, user_id):
        self.insert_calls.append(user_id)
        if self.insert_delay:
            await asyncio.sleep(self.insert_delay)
        if self.reject_all or (self.policy_rejects_owned and user_id):
            raise PolicyViolationError("Row rejected by ownership policy", details="42501")
        record = MindmapRecord(
            id=len(self.records) + 1,
            name=name,
            created_at=datetime.now(timezone.utc),
            user_id=user_id,
            data=data,
        )
        self.records.append(record)
        return record


@pytest.fixture
def fake_store():
    return FakeDocumentStore()


@pytest.fixture
def settings_factory():
    """Build in-memory test settings with overrides."""
    return build_settings


@pytest.fixture
def store_factory():
    """Build fake document stores with custom behaviour."""
    return FakeDocumentStore
