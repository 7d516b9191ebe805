"""
Integration client registry.

Live tool server connections are opened lazily, at most once per service
per process, and only when that service's credentials are configured.  A
service without a live connection falls back to its mock.  Mock clients are
built fresh for every run so concurrent runs share no mutable state.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from expense_lane.config import Settings
from expense_lane.services.documents import MOCK_DATABASE_ID, DocumentService, MockDocumentToolClient
from expense_lane.services.notifications import MockNotificationToolClient, NotificationService
from expense_lane.services.payments import PaymentVerifier, build_verifier
from expense_lane.services.tickets import MockTicketToolClient, TicketService
from expense_lane.services.tools import McpToolClient, ToolClient

logger = logging.getLogger(__name__)

SLACK, NOTION, JIRA = "slack", "notion", "jira"


@dataclass
class IntegrationClients:
    verifier: PaymentVerifier
    tickets: TicketService
    documents: DocumentService
    notifications: NotificationService


@dataclass(frozen=True)
class ToolServerSpec:
    script: str
    env: dict[str, str]


class ClientRegistry:
    def __init__(self, settings: Settings, verifier: Optional[PaymentVerifier] = None):
        self.settings = settings
        self.verifier = verifier or build_verifier(settings)
        self._live: dict[str, Optional[ToolClient]] = {}
        self._lock = asyncio.Lock()

    # ── tool server specs ────────────────────────────────────────────────
    def server_spec(self, name: str) -> Optional[ToolServerSpec]:
        """Launch parameters for *name*, or ``None`` when credentials are missing."""
        s = self.settings
        if name == SLACK and s.SLACK_BOT_TOKEN:
            return ToolServerSpec(
                f"{s.MCP_SLACK_PATH}/bin/slack-mcp.js",
                {"SLACK_BOT_TOKEN": s.SLACK_BOT_TOKEN},
            )
        if name == NOTION and s.NOTION_TOKEN:
            return ToolServerSpec(
                f"{s.MCP_NOTION_PATH}/bin/notion-mcp.js",
                {"NOTION_TOKEN": s.NOTION_TOKEN},
            )
        if name == JIRA and s.jira_configured:
            return ToolServerSpec(
                f"{s.MCP_JIRA_PATH}/bin/jira-mcp.js",
                {
                    "JIRA_BASE_URL": s.JIRA_BASE_URL,
                    "JIRA_EMAIL": s.JIRA_EMAIL,
                    "JIRA_API_TOKEN": s.JIRA_API_TOKEN,
                },
            )
        return None

    async def _connect(self, name: str) -> Optional[ToolClient]:
        spec = self.server_spec(name)
        if spec is None:
            logger.warning("%s tool server skipped (missing credentials)", name.capitalize())
            return None
        try:
            client = await McpToolClient.connect(
                name, self.settings.MCP_COMMAND, [spec.script], spec.env
            )
        except Exception as exc:
            logger.warning("Failed to initialize %s tool server: %s", name, exc)
            return None
        try:
            tools = await client.list_tools()
        except Exception as exc:
            logger.warning("Failed to list %s tools: %s", name, exc)
            try:
                await client.aclose()
            except Exception as close_exc:
                logger.warning("Failed to close %s tool client: %s", name, close_exc)
            return None
        logger.info("%s tool server ready (%s)", name.capitalize(), ", ".join(tools))
        return client

    async def live_client(self, name: str) -> Optional[ToolClient]:
        async with self._lock:
            if name not in self._live:
                self._live[name] = await self._connect(name)
            return self._live[name]

    # ── per-run bundle ───────────────────────────────────────────────────
    async def clients_for_run(self, use_mocks: bool) -> IntegrationClients:
        s = self.settings
        if use_mocks:
            logger.info("Using mock integration clients")
            slack = notion = jira = None
        else:
            slack = await self.live_client(SLACK)
            notion = await self.live_client(NOTION)
            jira = await self.live_client(JIRA)

        return IntegrationClients(
            verifier=self.verifier,
            tickets=TicketService(
                jira or MockTicketToolClient(s.JIRA_PROJECT_KEY),
                project_key=s.JIRA_PROJECT_KEY,
                base_url=s.JIRA_BASE_URL,
            ),
            documents=DocumentService(
                notion or MockDocumentToolClient(),
                s.NOTION_DB_ID if notion else (s.NOTION_DB_ID or MOCK_DATABASE_ID),
            ),
            notifications=NotificationService(slack or MockNotificationToolClient()),
        )

    @property
    def connected(self) -> list[str]:
        return [name for name, client in self._live.items() if client is not None]

    async def aclose(self) -> None:
        clients = [c for c in self._live.values() if c is not None]
        if clients:
            logger.info("Closing %d tool client(s)...", len(clients))
        try:
            results = await asyncio.gather(
                *(c.aclose() for c in clients), return_exceptions=True
            )
            for client, outcome in zip(clients, results):
                if isinstance(outcome, Exception):
                    logger.warning("Failed to close %s tool client: %s", client.name, outcome)
        finally:
            self._live.clear()
            await self.verifier.aclose()
