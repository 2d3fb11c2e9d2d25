"""Root conftest — shared test configuration.

Invariants:
    - Tests never read a real ENCRYPTION_KEY or database URL from the environment
    - Settings and the process-wide cipher are rebuilt for every test
    - db_manager is a fresh in-memory SQLite database per test
"""

import os

import pytest

os.environ["ENVIRONMENT"] = "test"
os.environ["ENCRYPTION_KEY"] = "0123456789abcdef" * 4
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from vetcepi.config import get_settings  # noqa: E402
from vetcepi.db.base import Base  # noqa: E402
from vetcepi.infrastructure.database import DatabaseSessionManager  # noqa: E402
from vetcepi.infrastructure.key_management import get_field_cipher  # noqa: E402
from vetcepi.infrastructure.record_store import SqlRecordStore  # noqa: E402
import vetcepi.models  # noqa: E402,F401


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    get_field_cipher.cache_clear()
    yield
    get_settings.cache_clear()
    get_field_cipher.cache_clear()


@pytest.fixture
async def db_manager():
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield manager
    await manager.dispose()


@pytest.fixture
async def sql_store(db_manager):
    return SqlRecordStore(db_manager)
