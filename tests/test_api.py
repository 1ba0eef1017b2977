# tests/test_api.py
"""Tests for the FastAPI command and sync endpoints."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from conftest import T2, VALID_TOKEN, FakeRemoteClient
from src.config import Settings
from src.core.commands.models import Command, dump_commands
from src.core.errors import NetworkFailure
from src.core.factory import SniptApp, create_app
from src.core.lifecycle import get_lifecycle_manager, reset_lifecycle_manager
from src.interfaces.api import main as api_main
from src.interfaces.api.main import app
from src.interfaces.api.security import limiter


@pytest.fixture
def snipt(test_settings: Settings, remote: FakeRemoteClient) -> SniptApp:
    return create_app(test_settings, client=remote)


@pytest_asyncio.fixture
async def client(snipt: SniptApp, test_settings: Settings) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with test components installed."""
    app.state.snipt = snipt
    app.state.settings = test_settings
    limiter.enabled = False
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    limiter.enabled = True
    del app.state.snipt
    del app.state.settings


async def _enable_sync(client: AsyncClient) -> None:
    response = await client.put(
        "/sync/config", json={"token": VALID_TOKEN, "enabled": True, "auto_sync": False}
    )
    assert response.status_code == 200


class TestCommandEndpoints:
    """Tests for /commands and /tags."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client: AsyncClient) -> None:
        """Test POST /commands returns the new command and GET finds it."""
        response = await client.post(
            "/commands", json={"title": "List", "command": "ls -la", "tags": ["shell"]}
        )
        assert response.status_code == 201
        created = response.json()
        assert created["favorite"] is False
        assert created["created_at"] == created["updated_at"]

        response = await client.get(f"/commands/{created['id']}")
        assert response.status_code == 200
        assert response.json()["command"] == "ls -la"

    @pytest.mark.asyncio
    async def test_create_rejects_blank_title(self, client: AsyncClient) -> None:
        """Test a blank title is rejected."""
        response = await client.post("/commands", json={"title": "  ", "command": "ls"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_patch_updates_fields(self, client: AsyncClient) -> None:
        """Test PATCH applies a partial update."""
        created = (await client.post("/commands", json={"title": "A", "command": "a"})).json()
        response = await client.patch(f"/commands/{created['id']}", json={"description": "d"})
        assert response.status_code == 200
        assert response.json()["description"] == "d"
        assert response.json()["title"] == "A"

    @pytest.mark.asyncio
    async def test_patch_rejects_readonly_fields(self, client: AsyncClient) -> None:
        """Test id cannot be changed through PATCH."""
        created = (await client.post("/commands", json={"title": "A", "command": "a"})).json()
        response = await client.patch(f"/commands/{created['id']}", json={"id": "other"})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_id_is_404(self, client: AsyncClient) -> None:
        """Test every per-command endpoint 404s on an unknown id."""
        assert (await client.get("/commands/missing")).status_code == 404
        assert (await client.patch("/commands/missing", json={"title": "x"})).status_code == 404
        assert (await client.delete("/commands/missing")).status_code == 404
        assert (await client.post("/commands/missing/favorite")).status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_id_detail(self, client: AsyncClient) -> None:
        """Test the strict lookup error is mapped to a 404 body."""
        response = await client.get("/commands/missing")
        assert response.json() == {"detail": "No command found with id: missing"}

    @pytest.mark.asyncio
    async def test_list_favorites_first_and_tags(self, client: AsyncClient) -> None:
        """Test listing order, tag filter and the tag list."""
        a = (await client.post("/commands", json={"title": "A", "command": "a", "tags": ["git"]})).json()
        b = (await client.post("/commands", json={"title": "B", "command": "b", "tags": ["shell"]})).json()
        await client.post(f"/commands/{a['id']}/favorite")

        listed = (await client.get("/commands")).json()
        assert [item["id"] for item in listed] == [a["id"], b["id"]]

        filtered = (await client.get("/commands", params={"tag": "shell"})).json()
        assert [item["id"] for item in filtered] == [b["id"]]

        assert (await client.get("/tags")).json() == ["git", "shell"]

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient) -> None:
        """Test DELETE removes the command."""
        created = (await client.post("/commands", json={"title": "A", "command": "a"})).json()
        response = await client.delete(f"/commands/{created['id']}")
        assert response.json() == {"deleted": True}
        assert (await client.get("/commands")).json() == []


class TestSyncEndpoints:
    """Tests for /sync endpoints."""

    @pytest.mark.asyncio
    async def test_status_hides_token(self, client: AsyncClient) -> None:
        """Test the status reports has_token but never the token."""
        await _enable_sync(client)
        data = (await client.get("/sync/status")).json()
        assert data["status"] == "idle"
        assert data["has_token"] is True
        assert data["enabled"] is True
        assert VALID_TOKEN not in str(data)

    @pytest.mark.asyncio
    async def test_push_without_configuration_is_400(self, client: AsyncClient) -> None:
        """Test ConfigurationError maps to 400 and sets the error status."""
        response = await client.post("/sync/push")
        assert response.status_code == 400
        status = (await client.get("/sync/status")).json()
        assert status["status"] == "error"

        cleared = (await client.post("/sync/clear-error")).json()
        assert cleared["status"] == "idle"

    @pytest.mark.asyncio
    async def test_push_creates_document(self, client: AsyncClient, remote: FakeRemoteClient) -> None:
        """Test a manual push returns the created document id."""
        await _enable_sync(client)
        await client.post("/commands", json={"title": "A", "command": "a"})

        response = await client.post("/sync/push")

        assert response.status_code == 200
        assert response.json() == {"gist_id": "gist-1"}
        assert (await client.get("/sync/status")).json()["gist_id"] == "gist-1"

    @pytest.mark.asyncio
    async def test_network_failure_is_503(self, client: AsyncClient, remote: FakeRemoteClient) -> None:
        """Test NetworkFailure maps to 503."""
        await _enable_sync(client)
        remote.fail("create", NetworkFailure("offline"))
        response = await client.post("/sync/push")
        assert response.status_code == 503
        assert response.json()["detail"] == "offline"

    @pytest.mark.asyncio
    async def test_pull_merges(self, client: AsyncClient, remote: FakeRemoteClient) -> None:
        """Test a pull brings remote commands in."""
        remote.documents["gist-9"] = dump_commands(
            [Command(id="r", title="Remote", command="r", created_at=T2, updated_at=T2)]
        )
        remote.modified["gist-9"] = T2
        await _enable_sync(client)
        await client.put("/sync/config", json={"gist_id": "gist-9"})

        response = await client.post("/sync/pull")

        assert response.json() == {"merged": True, "conflict": False, "count": 1}
        assert [item["id"] for item in (await client.get("/commands")).json()] == ["r"]

    @pytest.mark.asyncio
    async def test_connection_test(self, client: AsyncClient) -> None:
        """Test POST /sync/test reports the account."""
        await _enable_sync(client)
        data = (await client.post("/sync/test")).json()
        assert data["success"] is True


class TestApiKey:
    """Tests for the optional X-API-Key check."""

    @pytest.mark.asyncio
    async def test_key_required_when_configured(self, client: AsyncClient, test_settings: Settings) -> None:
        """Test requests need the configured key."""
        test_settings.api_auth_key = "secret"

        assert (await client.get("/commands")).status_code == 401
        assert (await client.get("/commands", headers={"X-API-Key": "wrong"})).status_code == 403
        assert (await client.get("/commands", headers={"X-API-Key": "secret"})).status_code == 200

    @pytest.mark.asyncio
    async def test_health_is_open(self, client: AsyncClient, test_settings: Settings) -> None:
        """Test /health needs no key."""
        test_settings.api_auth_key = "secret"
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestLifespan:
    """Tests for the application lifespan handler."""

    @pytest.mark.asyncio
    async def test_repeated_lifespans_start_fresh(
        self,
        test_settings: Settings,
        remote: FakeRemoteClient,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test each lifespan registers only its own components."""
        reset_lifecycle_manager()
        monkeypatch.setattr(api_main, "settings", test_settings)
        monkeypatch.setattr(api_main, "configure_logging", lambda *args, **kwargs: None)
        monkeypatch.setattr(api_main, "create_app", lambda config: create_app(config, client=remote))

        for _ in range(2):
            async with api_main.lifespan(app):
                manager = get_lifecycle_manager()
                assert manager.is_started
                assert manager.component_count == 2

        assert get_lifecycle_manager().component_count == 0
        del app.state.snipt
        del app.state.settings
