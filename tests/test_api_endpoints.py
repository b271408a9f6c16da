from __future__ import annotations

import uuid
from typing import AsyncGenerator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from statsync.main import app
from statsync.services.credential_service import create_credential_service
from statsync.services.scheduler_service import SyncScheduler


@pytest.fixture
def sync_scheduler(mock_sync_engine, session_factory) -> SyncScheduler:
    fake = MagicMock()
    fake.running = False
    return SyncScheduler(mock_sync_engine, session_factory=session_factory, scheduler=fake)


@pytest_asyncio.fixture
async def client(credential_service, sync_scheduler) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with the test database and scheduler wired in."""
    app.dependency_overrides[create_credential_service] = lambda: credential_service
    app.state.sync_scheduler = sync_scheduler

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.sync_scheduler = None


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["scheduler_running"] is False


class TestIntegrationEndpoints:
    """Credential admin routes."""

    @pytest.mark.asyncio
    async def test_save_and_list_integrations(self, client: AsyncClient, tenant_id):
        response = await client.put(
            f"/api/integrations/{tenant_id}/presto",
            json={"credentials": {"username": "coach", "password": "hunter2"}, "config": {"season_id": "2026"}},
        )
        assert response.status_code == 200

        response = await client.get(f"/api/integrations/{tenant_id}")
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        integration = data["data"][0]
        assert integration["provider"] == "presto"
        assert integration["is_active"] is True
        assert integration["config"] == {"season_id": "2026"}
        assert "hunter2" not in response.text
        assert "credentials_encrypted" not in integration

    @pytest.mark.asyncio
    async def test_save_rejects_unknown_credential_type(self, client: AsyncClient, tenant_id):
        response = await client.put(
            f"/api/integrations/{tenant_id}/presto",
            json={"credentials": {"k": "v"}, "credential_type": "kerberos"},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_tenant_id(self, client: AsyncClient):
        response = await client.get("/api/integrations/not-a-uuid")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_config(self, client: AsyncClient, credential_service, tenant_id):
        await credential_service.save_credentials(
            tenant_id, "presto", {"username": "u", "password": "p"}, {"season_id": "2026"}
        )

        response = await client.patch(
            f"/api/integrations/{tenant_id}/presto/config", json={"config": {"team_id": "t-9"}}
        )

        assert response.status_code == 200
        assert response.json()["config"] == {"season_id": "2026", "team_id": "t-9"}

    @pytest.mark.asyncio
    async def test_update_config_not_found(self, client: AsyncClient, tenant_id):
        response = await client.patch(f"/api/integrations/{tenant_id}/hudl/config", json={"config": {}})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_deactivate_and_delete(self, client: AsyncClient, credential_service, tenant_id):
        await credential_service.save_credentials(tenant_id, "presto", {"username": "u", "password": "p"})

        response = await client.post(f"/api/integrations/{tenant_id}/presto/deactivate")
        assert response.json()["found"] is True
        listing = (await client.get(f"/api/integrations/{tenant_id}")).json()
        assert listing["data"][0]["is_active"] is False

        response = await client.delete(f"/api/integrations/{tenant_id}/presto")
        assert response.json()["deleted"] is True
        response = await client.delete(f"/api/integrations/{tenant_id}/presto")
        assert response.json()["deleted"] is False

    @pytest.mark.asyncio
    async def test_deactivate_missing(self, client: AsyncClient):
        response = await client.post(f"/api/integrations/{uuid.uuid4()}/presto/deactivate")
        assert response.status_code == 200
        assert response.json()["found"] is False


class TestSyncEndpoints:
    """Scheduler control routes."""

    @pytest.mark.asyncio
    async def test_status(self, client: AsyncClient):
        response = await client.get("/api/sync/status")
        assert response.status_code == 200
        data = response.json()
        assert data["running"] is False
        assert data["syncing_tenants"] == []

    @pytest.mark.asyncio
    async def test_trigger_full_sync(self, client: AsyncClient, mock_sync_engine, seed_tenants):
        (tid,) = await seed_tenants(1)

        response = await client.post("/api/sync/full")

        assert response.status_code == 200
        mock_sync_engine.sync_all.assert_awaited_once_with(tid, None)

    @pytest.mark.asyncio
    async def test_trigger_live_sync(self, client: AsyncClient, mock_sync_engine, seed_tenants):
        (tid,) = await seed_tenants(1)

        response = await client.post("/api/sync/live")

        assert response.status_code == 200
        mock_sync_engine.get_live_eligible_games.assert_awaited_once_with(tid)

    @pytest.mark.asyncio
    async def test_start_and_stop(self, client: AsyncClient, sync_scheduler):
        response = await client.post("/api/sync/start")
        assert response.status_code == 200
        assert sync_scheduler.running is True
        assert (await client.get("/health")).json()["scheduler_running"] is True

        response = await client.post("/api/sync/stop")
        assert response.status_code == 200
        assert sync_scheduler.running is False

    @pytest.mark.asyncio
    async def test_no_scheduler_configured(self, client: AsyncClient):
        app.state.sync_scheduler = None

        response = await client.get("/api/sync/status")

        assert response.status_code == 503
