"""
Ticket creation (Jira) for received payments.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from expense_lane.errors import ToolCallError
from expense_lane.pipeline.formatting import display_time
from expense_lane.schemas import Receipt, TicketRecord, VerificationResult
from expense_lane.services.tools import text_result, tool_payload

logger = logging.getLogger(__name__)

DEFAULT_JIRA_BASE_URL = "https://your-domain.atlassian.net"
TICKET_LABELS = ["payment", "expense", "automated"]


def build_ticket_description(receipt: Receipt, verification: VerificationResult) -> str:
    """Jira wiki markup body for a payment ticket."""
    lines = [
        "*Payment Details*",
        f"* Order ID: {receipt.order_id}",
        f"* Amount: ${receipt.amount:.2f} {receipt.currency}",
        f"* Payer: {receipt.payer}",
        f"* Source: {receipt.source.value}",
    ]
    if receipt.timestamp:
        lines.append(f"* Timestamp: {display_time(receipt.timestamp)}")
    lines += [
        "",
        "*Verification Status*",
        f"* Verified: {'✓ Yes' if verification.verified else '✗ No'}",
        f"* Status: {verification.status.value.upper()}",
    ]
    if verification.transaction_id:
        lines.append(f"* Transaction ID: {verification.transaction_id}")
    if verification.message:
        lines.append(f"* Message: {verification.message}")
    lines.append(f"* Verified At: {display_time(verification.verified_at)}")
    if receipt.description:
        lines += ["", "*Original Message*", receipt.description]
    lines += ["", "_Automatically created by Expense Fast Lane_"]
    return "\n".join(lines)


class TicketService:
    def __init__(self, tool_client, project_key: str = "EXP", base_url: Optional[str] = None):
        self.tool_client = tool_client
        self.project_key = project_key
        self.base_url = (base_url or DEFAULT_JIRA_BASE_URL).rstrip("/")

    async def create_payment_ticket(
        self, receipt: Receipt, verification: VerificationResult
    ) -> TicketRecord:
        logger.info("Creating Jira issue in project %s", self.project_key)
        result = await self.tool_client.call_tool(
            "createIssue",
            {
                "fields": {
                    "project": {"key": self.project_key},
                    "summary": f"Payment Received: {receipt.order_id} - ${receipt.amount:.2f}",
                    "description": build_ticket_description(receipt, verification),
                    "issuetype": {"name": "Task"},
                    "labels": TICKET_LABELS,
                    "priority": {"name": "Medium" if verification.verified else "High"},
                },
            },
        )
        issue = tool_payload(result)
        if not issue.get("key"):
            raise ToolCallError(self.tool_client.name, "createIssue", "response has no issue key")

        logger.info("Created Jira issue: %s", issue["key"])
        return TicketRecord(
            key=issue["key"],
            id=str(issue.get("id", "")),
            url=f"{self.base_url}/browse/{issue['key']}",
        )


class MockTicketToolClient:
    """Issues sequential keys starting at ``<project>-1000``."""

    def __init__(self, project_key: str = "EXP", start: int = 1000):
        self.name = "jira-mock"
        self.project_key = project_key
        self._counter = start

    async def call_tool(self, tool: str, arguments: dict[str, Any]) -> dict[str, Any]:
        logger.info("[MOCK] Jira.%s called", tool)
        if tool != "createIssue":
            return {}

        key = f"{self.project_key}-{self._counter}"
        self._counter += 1
        logger.info("[MOCK] Created Jira issue: %s", key)
        return text_result(
            {
                "key": key,
                "id": str(self._counter),
                "self": f"{DEFAULT_JIRA_BASE_URL}/rest/api/2/issue/{self._counter}",
            }
        )

    async def list_tools(self) -> list[str]:
        return ["createIssue", "getIssue", "updateIssue"]

    async def aclose(self) -> None:
        logger.debug("[MOCK] Jira client closed")
