"""
Document database entries (Notion) mirroring each processed payment.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Optional

from expense_lane.errors import ConfigurationError, ToolCallError
from expense_lane.schemas import DocumentRecord, Receipt, VerificationResult, utc_now_iso
from expense_lane.services.tools import text_result, tool_payload

logger = logging.getLogger(__name__)

MOCK_DATABASE_ID = "mock-database"


def _rich_text(content: str) -> dict:
    return {"rich_text": [{"text": {"content": content}}]}


def build_page_properties(
    receipt: Receipt,
    verification: VerificationResult,
    ticket_key: Optional[str] = None,
) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "Order ID": {"title": [{"text": {"content": receipt.order_id}}]},
        "Amount": {"number": float(receipt.amount)},
        "Currency": {"select": {"name": receipt.currency}},
        "Payer": _rich_text(receipt.payer),
        "Status": {"select": {"name": "Verified" if verification.verified else "Pending"}},
        "Source": {"select": {"name": receipt.source.value}},
        "Timestamp": {"date": {"start": receipt.timestamp or utc_now_iso()}},
    }
    if ticket_key:
        properties["Jira Issue"] = _rich_text(ticket_key)
    if verification.transaction_id:
        properties["Transaction ID"] = _rich_text(verification.transaction_id)
    return properties


class DocumentService:
    def __init__(self, tool_client, database_id: Optional[str]):
        self.tool_client = tool_client
        self.database_id = database_id

    async def create_payment_entry(
        self,
        receipt: Receipt,
        verification: VerificationResult,
        ticket_key: Optional[str] = None,
    ) -> DocumentRecord:
        if not self.database_id:
            raise ConfigurationError("NOTION_DB_ID not configured")

        logger.info("Creating Notion entry in database %s", self.database_id)
        result = await self.tool_client.call_tool(
            "pages.create",
            {
                "parent": {"database_id": self.database_id},
                "properties": build_page_properties(receipt, verification, ticket_key),
            },
        )
        page = tool_payload(result)
        page_id = page.get("id")
        if not page_id:
            raise ToolCallError(self.tool_client.name, "pages.create", "response has no page id")

        logger.info("Created Notion page: %s", page_id)
        return DocumentRecord(
            id=page_id,
            url=page.get("url") or f"https://notion.so/{page_id.replace('-', '')}",
        )


class MockDocumentToolClient:
    def __init__(self):
        self.name = "notion-mock"

    async def call_tool(self, tool: str, arguments: dict[str, Any]) -> dict[str, Any]:
        logger.info("[MOCK] Notion.%s called", tool)
        if tool not in ("pages.create", "appendDatabaseRow"):
            return {}

        page_id = f"mock-page-{int(time.time() * 1000)}"
        logger.info("[MOCK] Created Notion page: %s", page_id)
        return text_result(
            {
                "id": page_id,
                "url": f"https://notion.so/{page_id}",
                "created_time": utc_now_iso(),
            }
        )

    async def list_tools(self) -> list[str]:
        return ["pages.create", "pages.update", "databases.query"]

    async def aclose(self) -> None:
        logger.debug("[MOCK] Notion client closed")
