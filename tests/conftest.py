from __future__ import annotations

import uuid
from typing import AsyncGenerator, Awaitable, Callable, List
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from cryptography.fernet import Fernet
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from statsync.db import Base
from statsync.models.integration_credential import IntegrationCredential  # noqa: F401
from statsync.services.credential_service import IntegrationCredentialService
from statsync.services.encryption_service import EncryptionService

# Single shared in-memory database per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine):
    """Session factory bound to the test database."""
    return sessionmaker(test_engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def encryption() -> EncryptionService:
    return EncryptionService(Fernet.generate_key())


@pytest.fixture
def credential_service(db_session: AsyncSession, encryption: EncryptionService) -> IntegrationCredentialService:
    return IntegrationCredentialService(db_session, encryption=encryption, max_refresh_errors=5)


@pytest.fixture
def tenant_id() -> uuid.UUID:
    """Generate a sample tenant ID for testing."""
    return uuid.uuid4()


@pytest.fixture
def mock_sync_engine() -> AsyncMock:
    """Sync engine double: every call succeeds and no games are live."""
    engine = AsyncMock()
    engine.sync_all.return_value = {"roster": {}, "schedule": {}, "stats": {}, "errors": []}
    engine.get_live_eligible_games.return_value = []
    engine.sync_live_stats.return_value = {"success": True}
    return engine


@pytest.fixture
def seed_tenants(session_factory, encryption) -> Callable[..., Awaitable[List[uuid.UUID]]]:
    """Store active presto credentials for ``count`` new tenants."""

    async def _seed(count: int = 1, provider: str = "presto") -> List[uuid.UUID]:
        tenant_ids = [uuid.uuid4() for _ in range(count)]
        async with session_factory() as session:
            service = IntegrationCredentialService(session, encryption=encryption)
            for tid in tenant_ids:
                await service.save_credentials(
                    tid, provider, {"username": "coach", "password": "hunter2"}, {"season_id": "2026"}
                )
        return tenant_ids

    return _seed
