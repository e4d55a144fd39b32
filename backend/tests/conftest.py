"""
Shared fixtures: a fresh in-memory key-value store, test settings and an
initialized user store that is closed after each test.
"""

import pytest
import pytest_asyncio

from userstore.core.config import Settings
from userstore.db.kv_store import InMemoryKeyValueStore
from userstore.services.user_store import UserStore


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        KV_BACKEND="memory",
        SEED_DEFAULT_USERS=False,
        SAMPLE_USER_COUNT=0,
        BACKUP_INTERVAL_SECONDS=3600,
        MAX_USERS=50,
    )


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest_asyncio.fixture
async def store(kv, test_settings):
    user_store = UserStore(kv, test_settings)
    await user_store.initialize()
    yield user_store
    await user_store.close()
