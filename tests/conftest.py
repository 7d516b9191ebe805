"""
Shared pytest fixtures — mock-mode settings, integration clients, FastAPI TestClient.
"""
from typing import Any

import pytest
from fastapi.testclient import TestClient

from expense_lane.config import Settings
from expense_lane.dependencies import get_app_settings, get_registry
from expense_lane.main import app
from expense_lane.schemas import Receipt
from expense_lane.services.documents import MOCK_DATABASE_ID, DocumentService, MockDocumentToolClient
from expense_lane.services.notifications import MockNotificationToolClient, NotificationService
from expense_lane.services.payments import MockPaymentVerifier
from expense_lane.services.registry import ClientRegistry, IntegrationClients
from expense_lane.services.tickets import MockTicketToolClient, TicketService

# Explicit values so credentials in the developer's environment never leak in
_BASE_SETTINGS: dict[str, Any] = {
    "SLACK_BOT_TOKEN": None,
    "SLACK_CHANNEL_ID": None,
    "NOTION_TOKEN": None,
    "NOTION_DB_ID": None,
    "JIRA_BASE_URL": None,
    "JIRA_EMAIL": None,
    "JIRA_API_TOKEN": None,
    "SQUARE_ACCESS_TOKEN": None,
    "MOCK_MODE": True,
    "MOCK_VERIFY_DELAY": 0.0,
}


def make_settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **{**_BASE_SETTINGS, **overrides})


def make_clients(
    ticket_client=None,
    document_client=None,
    notification_client=None,
    verifier=None,
    database_id: str = MOCK_DATABASE_ID,
) -> IntegrationClients:
    return IntegrationClients(
        verifier=verifier or MockPaymentVerifier(),
        tickets=TicketService(ticket_client or MockTicketToolClient()),
        documents=DocumentService(document_client or MockDocumentToolClient(), database_id),
        notifications=NotificationService(notification_client or MockNotificationToolClient()),
    )


class FailingToolClient:
    """Tool client whose every call raises."""

    def __init__(self, name: str = "failing", message: str = "service unavailable"):
        self.name = name
        self.message = message
        self.calls: list[str] = []

    async def call_tool(self, tool, arguments):
        self.calls.append(tool)
        raise RuntimeError(self.message)

    async def list_tools(self):
        return []

    async def aclose(self):
        pass


@pytest.fixture()
def settings():
    return make_settings()


@pytest.fixture()
def receipt():
    return Receipt(
        order_id="ORD-1",
        amount="150.00",
        payer="John Doe",
        description="Payment received: $150.00 from John Doe for order #ORD-1",
        timestamp="2024-01-18T10:30:00+00:00",
    )


@pytest.fixture()
def client(settings):
    registry = ClientRegistry(settings)
    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
