"""
Client registry tests — mock fallback, lazy single connection, shutdown.
"""
import pytest

from conftest import make_settings
from expense_lane.services import registry as registry_module
from expense_lane.services.documents import MOCK_DATABASE_ID
from expense_lane.services.payments import MockPaymentVerifier
from expense_lane.services.registry import JIRA, NOTION, SLACK, ClientRegistry


class FakeToolClient:
    def __init__(self, name):
        self.name = name
        self.closed = False

    async def call_tool(self, tool, arguments):
        return {}

    async def list_tools(self):
        return [f"{self.name}_tool"]

    async def aclose(self):
        self.closed = True


class StuckToolClient(FakeToolClient):
    async def list_tools(self):
        raise RuntimeError("server not responding")

    async def aclose(self):
        self.closed = True
        raise RuntimeError("subprocess already gone")


class RecordingVerifier:
    def __init__(self):
        self.closed = False

    async def verify(self, receipt):
        raise AssertionError("not used")

    async def aclose(self):
        self.closed = True


class FakeMcp:
    connects: list = []

    @classmethod
    async def connect(cls, name, command, args, env=None):
        cls.connects.append((name, command, args, env))
        return FakeToolClient(name)


class BrokenMcp:
    @classmethod
    async def connect(cls, name, command, args, env=None):
        raise FileNotFoundError("node")


@pytest.fixture()
def fake_mcp(monkeypatch):
    FakeMcp.connects = []
    monkeypatch.setattr(registry_module, "McpToolClient", FakeMcp)
    return FakeMcp


class TestServerSpec:
    def test_missing_credentials(self):
        registry = ClientRegistry(make_settings())
        assert registry.server_spec(SLACK) is None
        assert registry.server_spec(NOTION) is None
        assert registry.server_spec(JIRA) is None

    def test_jira_needs_all_credentials(self):
        partial = ClientRegistry(make_settings(JIRA_BASE_URL="https://j", JIRA_EMAIL="a@b"))
        assert partial.server_spec(JIRA) is None
        full = ClientRegistry(
            make_settings(JIRA_BASE_URL="https://j", JIRA_EMAIL="a@b", JIRA_API_TOKEN="t")
        )
        spec = full.server_spec(JIRA)
        assert spec.script.endswith("/bin/jira-mcp.js")
        assert spec.env["JIRA_API_TOKEN"] == "t"

    def test_slack_spec(self):
        spec = ClientRegistry(make_settings(SLACK_BOT_TOKEN="xoxb", MCP_SLACK_PATH="/srv/slack")).server_spec(SLACK)
        assert spec.script == "/srv/slack/bin/slack-mcp.js"
        assert spec.env == {"SLACK_BOT_TOKEN": "xoxb"}


class TestClientsForRun:
    @pytest.mark.asyncio
    async def test_mocks_without_credentials(self, fake_mcp):
        registry = ClientRegistry(make_settings(MOCK_MODE=False))
        clients = await registry.clients_for_run(use_mocks=False)
        assert clients.tickets.tool_client.name == "jira-mock"
        assert clients.documents.tool_client.name == "notion-mock"
        assert clients.notifications.tool_client.name == "slack-mock"
        assert clients.documents.database_id == MOCK_DATABASE_ID
        assert registry.connected == []
        assert fake_mcp.connects == []

    @pytest.mark.asyncio
    async def test_use_mocks_never_connects(self, fake_mcp):
        registry = ClientRegistry(make_settings(SLACK_BOT_TOKEN="xoxb"))
        clients = await registry.clients_for_run(use_mocks=True)
        assert clients.notifications.tool_client.name == "slack-mock"
        assert fake_mcp.connects == []

    @pytest.mark.asyncio
    async def test_live_client_is_connected_once(self, fake_mcp):
        registry = ClientRegistry(
            make_settings(SLACK_BOT_TOKEN="xoxb", NOTION_TOKEN="secret", NOTION_DB_ID="db-1")
        )
        first = await registry.clients_for_run(use_mocks=False)
        second = await registry.clients_for_run(use_mocks=False)

        assert [c[0] for c in fake_mcp.connects] == [SLACK, NOTION]
        assert first.notifications.tool_client is second.notifications.tool_client
        assert first.documents.database_id == "db-1"
        assert first.tickets.tool_client.name == "jira-mock"
        assert sorted(registry.connected) == [NOTION, SLACK]

    @pytest.mark.asyncio
    async def test_mock_clients_are_fresh_per_run(self):
        registry = ClientRegistry(make_settings())
        first = await registry.clients_for_run(use_mocks=True)
        second = await registry.clients_for_run(use_mocks=True)
        assert first.tickets.tool_client is not second.tickets.tool_client

    @pytest.mark.asyncio
    async def test_connection_failure_falls_back_to_mock(self, monkeypatch):
        monkeypatch.setattr(registry_module, "McpToolClient", BrokenMcp)
        registry = ClientRegistry(make_settings(SLACK_BOT_TOKEN="xoxb"))
        clients = await registry.clients_for_run(use_mocks=False)
        assert clients.notifications.tool_client.name == "slack-mock"
        assert registry.connected == []

    @pytest.mark.asyncio
    async def test_aclose_closes_live_clients(self, fake_mcp):
        registry = ClientRegistry(make_settings(SLACK_BOT_TOKEN="xoxb"))
        live = await registry.live_client(SLACK)
        await registry.aclose()
        assert live.closed is True
        assert registry.connected == []

    @pytest.mark.asyncio
    async def test_aclose_survives_a_failing_client(self, fake_mcp):
        verifier = RecordingVerifier()
        registry = ClientRegistry(
            make_settings(SLACK_BOT_TOKEN="xoxb", NOTION_TOKEN="secret"), verifier=verifier
        )
        slack = await registry.live_client(SLACK)
        registry._live[NOTION] = StuckToolClient(NOTION)

        await registry.aclose()

        assert slack.closed is True
        assert verifier.closed is True
        assert registry._live == {}

    @pytest.mark.asyncio
    async def test_tool_listing_failure_falls_back_to_mock(self, monkeypatch):
        stuck = StuckToolClient(SLACK)

        class StuckMcp:
            @classmethod
            async def connect(cls, name, command, args, env=None):
                return stuck

        monkeypatch.setattr(registry_module, "McpToolClient", StuckMcp)
        registry = ClientRegistry(make_settings(SLACK_BOT_TOKEN="xoxb"))
        clients = await registry.clients_for_run(use_mocks=False)
        assert clients.notifications.tool_client.name == "slack-mock"
        assert stuck.closed is True
        assert registry.connected == []

    def test_verifier_follows_mock_mode(self):
        assert isinstance(ClientRegistry(make_settings()).verifier, MockPaymentVerifier)
